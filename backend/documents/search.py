# backend/documents/search.py
import logging
from dataclasses import asdict, dataclass

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    id: str
    score: float
    file_name: str
    file_path: str = ""
    file_type: str = ""
    text_preview: str = ""
    category: str = ""
    chunk_index: int = 0
    total_chunks: int = 1

    @classmethod
    def from_match(cls, match: dict) -> "SearchResult":
        meta = match.get("metadata") or {}
        return cls(
            id=str(match.get("id")),
            score=float(match.get("score") or 0.0),
            file_name=meta.get("fileName") or "Unknown",
            file_path=meta.get("filePath") or "",
            file_type=meta.get("fileType") or "",
            text_preview=meta.get("textPreview") or "",
            category=meta.get("category") or "",
            chunk_index=int(meta.get("chunkIndex") or 0),
            total_chunks=int(meta.get("totalChunks") or 1),
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        return {
            "id": data["id"],
            "score": data["score"],
            "fileName": data["file_name"],
            "filePath": data["file_path"],
            "fileType": data["file_type"],
            "textPreview": data["text_preview"],
            "category": data["category"],
            "chunkIndex": data["chunk_index"],
            "totalChunks": data["total_chunks"],
        }


class KnowledgeSearch:
    """Embed a query and look it up in the vector index."""

    def __init__(self, embedder=None, index=None):
        if embedder is None:
            from .azure_client import AzureEmbeddingClient
            embedder = AzureEmbeddingClient()
        if index is None:
            from .vector_index import get_vector_index
            index = get_vector_index()
        self.embedder = embedder
        self.index = index

    def search(self, query: str, top_k: int = 10, category: str | None = None) -> list[SearchResult]:
        logger.info("Knowledge search top_k=%d category=%s", top_k, category or "none")
        vector = self.embedder.embed(query)
        matches = self.index.query(vector, top_k=top_k, category=category or None)
        results = [SearchResult.from_match(m) for m in matches]
        if results:
            logger.info("Found %d results, top %s (%.3f)", len(results), results[0].file_name, results[0].score)
        else:
            logger.info("No results found in knowledge base")
        return results
