# backend/documents/tasks.py
import logging
import os

from celery import shared_task
from django.conf import settings

from .indexer import DocumentIndexer
from .models import Document

logger = logging.getLogger(__name__)


def _save_progress(doc: Document, progress) -> None:
    doc.index_status = progress.status
    doc.index_progress = progress.progress
    doc.index_message = progress.message
    doc.save(update_fields=["index_status", "index_progress", "index_message", "updated_at"])


@shared_task(bind=True)
def index_document_task(self, doc_id: str):
    """
    Index a stored Document into the vector index:
    - read the file from MEDIA_ROOT/<file_path>
    - parse, chunk, embed, upsert (DocumentIndexer)
    - record each progress step on the Document row
    Not retried; a failed run leaves the Document in the error state.
    """
    doc = Document.objects.get(id=doc_id)
    if not doc.file_path:
        doc.index_status = "error"
        doc.index_message = "no stored file for document"
        doc.save(update_fields=["index_status", "index_message", "updated_at"])
        return {"error": "no file path"}

    full_path = os.path.join(settings.MEDIA_ROOT, doc.file_path)
    try:
        with open(full_path, "rb") as f:
            data = f.read()
    except OSError as exc:
        logger.exception("Cannot read %s for document %s", full_path, doc_id)
        doc.index_status = "error"
        doc.index_progress = 0
        doc.index_message = str(exc)
        doc.save(update_fields=["index_status", "index_progress", "index_message", "updated_at"])
        return {"error": str(exc)}

    indexer = DocumentIndexer()
    try:
        chunks = indexer.index_file(
            doc.name, data, doc.category, mime_type=doc.type or None,
            on_progress=lambda p: _save_progress(doc, p),
        )
    except Exception as exc:
        # progress callback has already stored the error state
        return {"status": "error", "error": str(exc)}
    return {"status": "ok", "chunks": chunks}
