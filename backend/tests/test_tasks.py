import os

import pytest
from django.conf import settings

from documents import tasks
from documents.indexer import DocumentIndexer
from documents.models import Document
from tests.fakes import FakeEmbedder, FakeIndex

pytestmark = pytest.mark.django_db


@pytest.fixture
def fake_index(monkeypatch):
    index = FakeIndex()
    monkeypatch.setattr(
        tasks, "DocumentIndexer",
        lambda: DocumentIndexer(embedder=FakeEmbedder(), index=index, sleep=lambda s: None),
    )
    return index


def stored_document(content: bytes, name="notes.txt"):
    rel_path = f"uploads/{name}"
    full_path = os.path.join(settings.MEDIA_ROOT, rel_path)
    os.makedirs(os.path.dirname(full_path), exist_ok=True)
    with open(full_path, "wb") as f:
        f.write(content)
    return Document.objects.create(
        user_id="user_1", name=name, type="text/plain", size=len(content),
        file_path=rel_path, category="Growth", index_status="queued",
    )


def test_progress_is_saved_on_the_document(fake_index):
    doc = stored_document(b"health and safety induction notes")

    result = tasks.index_document_task(str(doc.id))

    assert result == {"status": "ok", "chunks": 1}
    doc.refresh_from_db()
    assert doc.index_status == "complete"
    assert doc.index_progress == 100
    assert doc.index_message == "Successfully indexed notes.txt (1 chunks)"
    assert fake_index.batches[0][0]["metadata"]["category"] == "Growth"


def test_indexing_failure_leaves_error_state(fake_index):
    doc = stored_document(b"   ")

    result = tasks.index_document_task(str(doc.id))

    assert result["status"] == "error"
    doc.refresh_from_db()
    assert doc.index_status == "error"
    assert doc.index_progress == 0
    assert doc.index_message == "File contains no text content to index"


def test_missing_file(fake_index):
    doc = Document.objects.create(user_id="user_1", name="gone.txt", file_path="uploads/gone.txt",
                                  category="Growth")

    result = tasks.index_document_task(str(doc.id))

    assert "error" in result
    doc.refresh_from_db()
    assert doc.index_status == "error"
    assert fake_index.batches == []
