import io

import docx
import fitz
from pptx import Presentation
from pptx.util import Inches

from documents.parsers import detect_mime, parse_file, sanitize_text


def test_plain_text():
    parsed = parse_file("notes.txt", b"hello   world\n\n\n\nsecond  line", "text/plain")
    assert parsed.text == "hello world\n\nsecond line"
    assert parsed.to_dict() == {
        "text": "hello world\n\nsecond line",
        "metadata": {"wordCount": 4, "fileType": "Text File", "fileName": "notes.txt"},
    }


def test_control_characters_removed():
    assert sanitize_text("a\x00b\x07c") == "abc"


def test_csv_becomes_markdown_table():
    data = b"name,age\nAda,36\nAlan,41\n"
    parsed = parse_file("people.csv", data, "text/csv")
    assert parsed.text.startswith("# CSV File: people.csv\n**Total Rows:** 2 | **Columns:** 2")
    assert "**Column Names:** name, age" in parsed.text
    assert "| name | age |\n| --- | --- |\n| Ada | 36 |\n| Alan | 41 |" in parsed.text
    assert parsed.pages == 1
    assert "## Rows" not in parsed.text


def test_large_csv_is_split_into_sections():
    rows = "\n".join(f"row{i},{i}" for i in range(150))
    parsed = parse_file("big.csv", f"key,value\n{rows}\n".encode(), None)
    assert "## Rows 1 - 100" in parsed.text
    assert "## Rows 101 - 150" in parsed.text
    assert parsed.pages == 2


def test_empty_csv():
    parsed = parse_file("empty.csv", b"a,b\n", "text/csv")
    assert parsed.text == "[CSV file is empty]"


def test_image_placeholder():
    parsed = parse_file("photo.png", b"\x89PNG" + b"0" * 2044, "image/png")
    assert parsed.file_type == "Image"
    assert parsed.text.startswith("[Image file: photo.png]")
    assert "2KB" in parsed.text


def test_broken_pdf_gives_placeholder():
    parsed = parse_file("broken.pdf", b"definitely not a pdf", "application/pdf")
    assert parsed.text == "[Unable to parse file: broken.pdf]"
    assert parsed.word_count == 0


def test_pdf_pages():
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Quarterly safety report")
    data = doc.tobytes()
    doc.close()

    parsed = parse_file("report.pdf", data)
    assert parsed.pages == 1
    assert parsed.text.startswith("--- Page 1 ---\n")
    assert "Quarterly safety report" in parsed.text
    assert parsed.to_dict()["metadata"]["pages"] == 1


def test_docx_paragraphs_and_tables():
    document = docx.Document()
    document.add_paragraph("Site induction checklist")
    table = document.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "PPE"
    table.rows[0].cells[1].text = "Required"
    buf = io.BytesIO()
    document.save(buf)

    parsed = parse_file("checklist.docx", buf.getvalue())
    assert parsed.file_type == "Word Document"
    assert "Site induction checklist" in parsed.text
    assert "PPE | Required" in parsed.text


def test_pptx_slides():
    presentation = Presentation()
    slide = presentation.slides.add_slide(presentation.slide_layouts[6])
    box = slide.shapes.add_textbox(Inches(1), Inches(1), Inches(4), Inches(1))
    box.text_frame.text = "Growth plan"
    buf = io.BytesIO()
    presentation.save(buf)

    parsed = parse_file("deck.pptx", buf.getvalue())
    assert parsed.text == "--- Slide 1 ---\nGrowth plan"
    assert parsed.pages == 1


def test_binary_file_placeholder():
    parsed = parse_file("blob.bin", b"\x00\x01\x02" * 10)
    assert parsed.file_type == "Binary File"
    assert parsed.text.startswith("[Binary file: blob.bin")


def test_detect_mime_from_extension():
    assert detect_mime("a.PDF") == "application/pdf"
    assert detect_mime("a.csv", "application/octet-stream") == "text/csv"
    assert detect_mime("a.txt", "text/x-custom") == "text/x-custom"
