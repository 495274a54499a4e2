# backend/documents/parsers.py
import csv
import io
import logging
import mimetypes
import re
from dataclasses import dataclass, field

import docx
import fitz  # PyMuPDF
from pptx import Presentation

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
CSV_MIME = "text/csv"

EXTENSION_MIME = {
    "pdf": PDF_MIME,
    "docx": DOCX_MIME,
    "pptx": PPTX_MIME,
    "csv": CSV_MIME,
    "txt": "text/plain",
    "md": "text/markdown",
    "json": "application/json",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
}
TEXT_EXTENSIONS = {"txt", "md", "json", "csv", "xml", "html", "css", "js", "ts", "py", "java", "cpp", "c", "h"}

CSV_ROWS_PER_TABLE = 100

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
HORIZONTAL_WS = re.compile(r"[ \t\r\f\v]+")
BLANK_LINES = re.compile(r"\n\s*\n+")


@dataclass
class ParsedContent:
    text: str
    file_type: str
    file_name: str
    word_count: int = 0
    pages: int | None = None
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        meta = {"wordCount": self.word_count, "fileType": self.file_type, "fileName": self.file_name}
        if self.pages is not None:
            meta["pages"] = self.pages
        return {"text": self.text, "metadata": meta}


def sanitize_text(text: str) -> str:
    """Drop NUL/control characters (Postgres text cannot hold NUL) and collapse whitespace."""
    if not text:
        return ""
    text = CONTROL_CHARS.sub("", text)
    text = HORIZONTAL_WS.sub(" ", text)
    text = BLANK_LINES.sub("\n\n", text)
    return "\n".join(line.strip() for line in text.split("\n")).strip()


def count_words(text: str) -> int:
    return len(text.split())


def extension_of(name: str) -> str:
    return name.rsplit(".", 1)[-1].lower() if "." in name else ""


def detect_mime(name: str, mime_type: str | None = None) -> str:
    if mime_type and mime_type != "application/octet-stream":
        return mime_type
    ext = extension_of(name)
    if ext in EXTENSION_MIME:
        return EXTENSION_MIME[ext]
    guessed, _ = mimetypes.guess_type(name)
    return guessed or "application/octet-stream"


def parse_pdf(name: str, data: bytes) -> ParsedContent:
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        sections = []
        for i in range(doc.page_count):
            page_text = sanitize_text(doc.load_page(i).get_text("text"))
            if page_text:
                sections.append(f"--- Page {i + 1} ---\n{page_text}")
        pages = doc.page_count
    finally:
        doc.close()
    text = "\n\n".join(sections)
    return ParsedContent(
        text=text or "[PDF content could not be extracted]",
        file_type="PDF Document",
        file_name=name,
        word_count=count_words(text),
        pages=pages,
    )


def parse_docx(name: str, data: bytes) -> ParsedContent:
    document = docx.Document(io.BytesIO(data))
    parts = [p.text for p in document.paragraphs if p.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [c.text.strip() for c in row.cells]
            if any(cells):
                parts.append(" | ".join(cells))
    text = sanitize_text("\n".join(parts))
    return ParsedContent(
        text=text or "[DOCX content could not be extracted]",
        file_type="Word Document",
        file_name=name,
        word_count=count_words(text),
    )


def parse_pptx(name: str, data: bytes) -> ParsedContent:
    presentation = Presentation(io.BytesIO(data))
    sections = []
    for idx, slide in enumerate(presentation.slides, start=1):
        lines = []
        for shape in slide.shapes:
            if shape.has_text_frame and shape.text_frame.text.strip():
                lines.append(shape.text_frame.text)
        if lines:
            sections.append(f"--- Slide {idx} ---\n" + "\n".join(lines))
    text = sanitize_text("\n\n".join(sections))
    return ParsedContent(
        text=text or "[PowerPoint content could not be extracted]",
        file_type="PowerPoint Presentation",
        file_name=name,
        word_count=count_words(text),
        pages=len(presentation.slides),
    )


def markdown_table(headers: list[str], rows: list[dict]) -> str:
    if not headers or not rows:
        return ""
    lines = [
        "| " + " | ".join(headers) + " |",
        "| " + " | ".join("---" for _ in headers) + " |",
    ]
    for row in rows:
        cells = []
        for h in headers:
            value = row.get(h)
            cells.append("" if value is None else str(value).replace("|", "\\|"))
        lines.append("| " + " | ".join(cells) + " |")
    return "\n".join(lines)


def parse_csv(name: str, data: bytes) -> ParsedContent:
    reader = csv.DictReader(io.StringIO(data.decode("utf-8-sig", errors="replace")))
    headers = reader.fieldnames or []
    rows = [r for r in reader if any((v or "").strip() for v in r.values() if isinstance(v, str))]

    if not rows:
        return ParsedContent(text="[CSV file is empty]", file_type="CSV Spreadsheet", file_name=name)

    total = len(rows)
    parts = [
        f"# CSV File: {name}",
        f"**Total Rows:** {total} | **Columns:** {len(headers)}",
        f"**Column Names:** {', '.join(headers)}",
        "",
    ]
    for start in range(0, total, CSV_ROWS_PER_TABLE):
        end = min(start + CSV_ROWS_PER_TABLE, total)
        if total > CSV_ROWS_PER_TABLE:
            parts.append(f"## Rows {start + 1} - {end}")
        parts.append(markdown_table(headers, rows[start:end]))
        parts.append("")

    text = sanitize_text("\n".join(parts))
    return ParsedContent(
        text=text,
        file_type="CSV Spreadsheet",
        file_name=name,
        word_count=count_words(text),
        pages=-(-total // CSV_ROWS_PER_TABLE),
    )


def parse_image(name: str, data: bytes) -> ParsedContent:
    return ParsedContent(
        text=(
            f"[Image file: {name}]\nThis is an image file that can be analyzed by the AI vision "
            f"model. The image is {round(len(data) / 1024)}KB in size."
        ),
        file_type="Image",
        file_name=name,
    )


def parse_text(name: str, data: bytes, file_type: str = "Text File") -> ParsedContent:
    text = sanitize_text(data.decode("utf-8", errors="replace"))
    return ParsedContent(text=text, file_type=file_type, file_name=name, word_count=count_words(text))


def parse_file(name: str, data: bytes, mime_type: str | None = None) -> ParsedContent:
    """
    Extract text from an uploaded file. Never raises: any failure gives a
    placeholder text with a zero word count.
    """
    mime = detect_mime(name, mime_type)
    ext = extension_of(name)
    try:
        if mime == PDF_MIME:
            return parse_pdf(name, data)
        if mime == DOCX_MIME:
            return parse_docx(name, data)
        if mime == PPTX_MIME:
            return parse_pptx(name, data)
        if mime == CSV_MIME or ext == "csv":
            return parse_csv(name, data)
        if mime.startswith("image/"):
            return parse_image(name, data)
        if mime.startswith("text/") or ext in TEXT_EXTENSIONS:
            return parse_text(name, data)
        if b"\x00" in data[:1024]:
            return ParsedContent(
                text=f"[Binary file: {name} - {round(len(data) / 1024)}KB]",
                file_type="Binary File",
                file_name=name,
            )
        return parse_text(name, data, file_type="Text Content")
    except Exception:
        logger.exception("Error parsing file %s", name)
        return ParsedContent(text=f"[Unable to parse file: {name}]", file_type=mime, file_name=name)
