# backend/documents/vector_index.py
"""
Vector index backends.

Both backends take and return the same shapes:
  upsert([{"id", "values", "metadata"}, ...])
  query(vector, top_k, category) -> [{"id", "score", "metadata"}, ...]
Matches come back in the order the service returns them.
"""
import logging
import uuid
from abc import ABC, abstractmethod

import requests
from django.conf import settings
from qdrant_client import QdrantClient
from qdrant_client.http import models as rest

logger = logging.getLogger(__name__)

VECTOR_TIMEOUT = 30


class VectorIndexError(Exception):
    pass


class VectorIndex(ABC):

    @abstractmethod
    def upsert(self, vectors: list[dict]) -> int:
        ...

    @abstractmethod
    def query(self, vector: list[float], top_k: int = 10, category: str | None = None) -> list[dict]:
        ...


class PineconeIndex(VectorIndex):
    """Pinecone data plane over its REST API."""

    def __init__(self, host: str | None = None, api_key: str | None = None,
                 namespace: str | None = None, session=None):
        host = host if host is not None else settings.PINECONE_INDEX_HOST
        if host and not host.startswith("http"):
            host = f"https://{host}"
        self.host = host.rstrip("/")
        self.api_key = api_key if api_key is not None else settings.PINECONE_API_KEY
        self.namespace = namespace if namespace is not None else settings.PINECONE_NAMESPACE
        self.session = session or requests.Session()

    def _post(self, path: str, body: dict) -> dict:
        if not self.host or not self.api_key:
            raise VectorIndexError("Pinecone configuration is missing")
        headers = {"Content-Type": "application/json", "Api-Key": self.api_key}
        try:
            r = self.session.post(f"{self.host}{path}", json=body, headers=headers, timeout=VECTOR_TIMEOUT)
        except requests.RequestException as exc:
            raise VectorIndexError(f"Pinecone request failed: {exc}") from exc
        if r.status_code != 200:
            logger.error("Pinecone %s error %s: %s", path, r.status_code, r.text)
            raise VectorIndexError(f"Pinecone error {r.status_code}: {r.text}")
        return r.json()

    def upsert(self, vectors: list[dict]) -> int:
        body = {"vectors": vectors, "namespace": self.namespace}
        data = self._post("/vectors/upsert", body)
        return int(data.get("upsertedCount", len(vectors)))

    def query(self, vector, top_k=10, category=None) -> list[dict]:
        body = {
            "vector": vector,
            "topK": top_k,
            "includeMetadata": True,
            "namespace": self.namespace,
        }
        if category:
            body["filter"] = {"category": {"$eq": category}}
        data = self._post("/query", body)
        return [
            {"id": m.get("id"), "score": m.get("score", 0.0), "metadata": m.get("metadata") or {}}
            for m in data.get("matches") or []
        ]


class QdrantIndex(VectorIndex):
    """
    Qdrant collection with cosine distance. Point ids must be ints or uuids,
    so string ids are mapped to uuid5 and kept in the payload under `vector_id`.
    """

    def __init__(self, url: str | None = None, api_key: str | None = None,
                 collection: str | None = None, dimensions: int | None = None, client=None):
        self.url = url or settings.QDRANT_URL
        self.api_key = api_key if api_key is not None else settings.QDRANT_API_KEY
        self.collection = collection or settings.QDRANT_COLLECTION_NAME
        self.dimensions = dimensions or settings.EMBED_DIM
        if client is not None:
            self.client = client
        elif self.api_key:
            self.client = QdrantClient(url=self.url, api_key=self.api_key)
        else:
            self.client = QdrantClient(url=self.url)
        self._ensured = False

    def _ensure_collection(self):
        if self._ensured:
            return
        cols = self.client.get_collections().collections
        if not any(c.name == self.collection for c in cols):
            logger.info("Creating Qdrant collection %s (dim=%d)", self.collection, self.dimensions)
            self.client.create_collection(
                collection_name=self.collection,
                vectors_config=rest.VectorParams(size=self.dimensions, distance=rest.Distance.COSINE),
            )
        self._ensured = True

    @staticmethod
    def point_id(vector_id: str) -> str:
        return str(uuid.uuid5(uuid.NAMESPACE_URL, vector_id))

    def upsert(self, vectors: list[dict]) -> int:
        points = [
            rest.PointStruct(
                id=self.point_id(v["id"]),
                vector=v["values"],
                payload={**(v.get("metadata") or {}), "vector_id": v["id"]},
            )
            for v in vectors
        ]
        try:
            self._ensure_collection()
            self.client.upsert(collection_name=self.collection, points=points)
        except Exception as exc:
            raise VectorIndexError(f"Qdrant upsert failed: {exc}") from exc
        return len(points)

    def query(self, vector, top_k=10, category=None) -> list[dict]:
        qfilter = None
        if category:
            qfilter = rest.Filter(
                must=[rest.FieldCondition(key="category", match=rest.MatchValue(value=category))]
            )
        try:
            self._ensure_collection()
            resp = self.client.query_points(
                collection_name=self.collection,
                query=vector,
                limit=top_k,
                with_payload=True,
                query_filter=qfilter,
            )
        except Exception as exc:
            raise VectorIndexError(f"Qdrant search failed: {exc}") from exc

        results = []
        for p in resp.points:
            payload = dict(p.payload or {})
            vector_id = payload.pop("vector_id", None) or str(p.id)
            results.append({"id": vector_id, "score": p.score, "metadata": payload})
        return results


def get_vector_index(backend: str | None = None) -> VectorIndex:
    backend = (backend or settings.VECTOR_BACKEND or "pinecone").lower()
    if backend == "qdrant":
        return QdrantIndex()
    if backend == "pinecone":
        return PineconeIndex()
    raise ValueError(f"Unknown VECTOR_BACKEND: {backend}")
