# backend/documents/indexer.py
import logging
import time
from dataclasses import dataclass

from django.utils import timezone

from .parsers import ParsedContent, parse_file

logger = logging.getLogger(__name__)

CHUNK_WORDS = 500
UPLOAD_BATCH = 5
EMBED_SPACING = 1.0
BATCH_SPACING = 0.5
PREVIEW_CHARS = 200


class IndexingError(Exception):
    pass


@dataclass
class IndexProgress:
    status: str  # parsing | chunking | embedding | uploading | complete | error
    progress: int
    message: str

    def to_dict(self) -> dict:
        return {"status": self.status, "progress": self.progress, "message": self.message}


def chunk_words(text: str, size: int = CHUNK_WORDS) -> list[str]:
    words = text.split()
    return [" ".join(words[i:i + size]) for i in range(0, len(words), size)]


class DocumentIndexer:
    """
    Parse a file, split it into fixed word windows, embed each window and
    upsert the vectors in small batches. Chunks are embedded one at a time
    with a pause in between to stay under the embedding rate limit.
    """

    def __init__(self, embedder=None, index=None, sleep=time.sleep, clock=time.time):
        if embedder is None:
            from .azure_client import AzureEmbeddingClient
            embedder = AzureEmbeddingClient()
        if index is None:
            from .vector_index import get_vector_index
            index = get_vector_index()
        self.embedder = embedder
        self.index = index
        self.sleep = sleep
        self.clock = clock

    def index_file(self, name: str, data: bytes, category: str, mime_type: str | None = None,
                   on_progress=None) -> int:
        """Index one file; returns the number of chunks uploaded."""
        def report(status, progress, message):
            if on_progress is not None:
                on_progress(IndexProgress(status, progress, message))

        try:
            report("parsing", 10, f"Parsing {name}...")
            parsed = parse_file(name, data, mime_type)
            if not parsed.text or not parsed.text.strip():
                raise IndexingError("File contains no text content to index")
            if parsed.text.startswith("[Unable to parse file:"):
                raise IndexingError(f"Unable to parse file: {name}")
            # image, binary and empty-document placeholders carry no words
            if parsed.word_count == 0:
                raise IndexingError(f"No text could be extracted from {name}")

            report("chunking", 30, "Breaking document into chunks...")
            chunks = chunk_words(parsed.text)
            logger.info("Split %s into %d chunks", name, len(chunks))
            if not chunks:
                raise IndexingError("No text chunks created from file")

            total = self._embed_and_upload(name, mime_type or parsed.file_type, category, parsed, chunks, report)

            report("complete", 100, f"Successfully indexed {name} ({total} chunks)")
            logger.info("Indexed %s with %d chunks", name, total)
            return total
        except Exception as exc:
            logger.exception("Error indexing file %s", name)
            report("error", 0, str(exc) or "Failed to index file")
            raise

    def _embed_and_upload(self, name, file_type, category, parsed: ParsedContent, chunks, report) -> int:
        total = len(chunks)
        batch = []
        for i, chunk in enumerate(chunks):
            progress = 30 + (i * 60) // total
            status = "embedding" if i < total - 1 else "uploading"
            report(status, progress, f"Processing chunk {i + 1} of {total}...")

            if i > 0:
                self.sleep(EMBED_SPACING)
            values = self.embedder.embed(chunk)

            batch.append({
                "id": f"{name}-chunk-{i}-{int(self.clock() * 1000)}",
                "values": values,
                "metadata": self._metadata(name, file_type, category, parsed, chunk, i, total),
            })

            if len(batch) >= UPLOAD_BATCH or i == total - 1:
                logger.info("Uploading batch of %d vectors", len(batch))
                self.index.upsert(batch)
                batch = []
                if i < total - 1:
                    self.sleep(BATCH_SPACING)
        return total

    @staticmethod
    def _metadata(name, file_type, category, parsed, chunk, i, total) -> dict:
        meta = {
            "fileName": name,
            "filePath": name,
            "fileType": file_type,
            "category": category,
            "chunkIndex": i,
            "totalChunks": total,
            "textPreview": chunk[:PREVIEW_CHARS],
            "uploadedAt": timezone.now().isoformat(),
            "wordCount": parsed.word_count,
        }
        # Pinecone rejects null metadata values
        if parsed.pages is not None:
            meta["pages"] = parsed.pages
        return meta
