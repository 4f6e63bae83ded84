"""Chroma implementation of the vector-store abstraction.

Field layout inside a Chroma collection:

* ``content`` → the record's document (full-text searchable)
* ``content_vector`` → the record's embedding
* ``ext`` / ``_knowledge_name`` → metadata keys

The collection is created with ``hnsw:space=cosine`` and records its
vector dimensionality in the collection metadata.
"""

from __future__ import annotations

import logging
from typing import Any

import chromadb

from ragx.config import settings
from ragx.errors import EmbeddingDimensionMismatch, IndexSpaceMismatch
from ragx.models import FIELD_CONTENT, FIELD_CONTENT_VECTOR, FIELD_EXTRA, FIELD_KNOWLEDGE_NAME
from ragx.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)

DIMENSIONS_KEY = "content_vector_dims"
SPACE_KEY = "hnsw:space"
SPACE = "cosine"


def _build_chroma_where(knowledge_name: str | None) -> dict[str, Any] | None:
    """Exact-match filter on the partition name."""
    if not knowledge_name:
        return None
    return {FIELD_KNOWLEDGE_NAME: {"$eq": knowledge_name}}


def _first(results: dict[str, Any], key: str) -> list[Any] | None:
    rows = results.get(key)
    if rows is None or len(rows) == 0:
        return None
    return rows[0]


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store.

    Parameters
    ----------
    index_name:
        Name of the Chroma collection.
    host:
        Chroma server hostname.
    port:
        Chroma server port.
    dimensions:
        Length of the stored embeddings.
    client:
        Pre-built Chroma client (e.g. ``chromadb.EphemeralClient()``);
        when given, *host* and *port* are ignored.
    include_vectors:
        Return ``content_vector`` with every hit.
    """

    def __init__(
        self,
        index_name: str = settings.chroma_collection,
        *,
        host: str = settings.chroma_host,
        port: int = settings.chroma_port,
        dimensions: int = settings.embedding_dimensions,
        client: Any = None,
        include_vectors: bool = False,
    ) -> None:
        super().__init__(index_name, dimensions)
        self._client = client if client is not None else chromadb.HttpClient(host=host, port=port)
        self._collection = None
        self.include_vectors = include_vectors

    @property
    def collection(self):
        if self._collection is None:
            self.ensure_schema()
        return self._collection

    # -- VectorStoreBase overrides --------------------------------------------

    def ensure_schema(self) -> None:
        existing = {getattr(c, "name", c) for c in self._client.list_collections()}
        if self.index_name not in existing:
            logger.info("Creating collection %r (%d dims, cosine)", self.index_name, self.dimensions)
            # get_or_create tolerates a concurrent creator winning the race
            collection = self._client.get_or_create_collection(
                name=self.index_name,
                metadata={SPACE_KEY: SPACE, DIMENSIONS_KEY: self.dimensions},
            )
        else:
            collection = self._client.get_collection(name=self.index_name)

        metadata = collection.metadata or {}
        # Chroma defaults to l2 when no space was given at creation
        space = metadata.get(SPACE_KEY, "l2")
        if space != SPACE:
            raise IndexSpaceMismatch(expected=SPACE, actual=space)
        stored = metadata.get(DIMENSIONS_KEY)
        if stored is not None and int(stored) != self.dimensions:
            raise EmbeddingDimensionMismatch(expected=int(stored), actual=self.dimensions)
        self._collection = collection

    def write(self, records: list[dict[str, Any]]) -> None:
        metadatas = []
        for rec in records:
            meta = {FIELD_KNOWLEDGE_NAME: rec[FIELD_KNOWLEDGE_NAME]}
            if rec.get(FIELD_EXTRA) is not None:
                meta[FIELD_EXTRA] = rec[FIELD_EXTRA]
            metadatas.append(meta)

        self.collection.upsert(
            ids=[rec["id"] for rec in records],
            embeddings=[rec[FIELD_CONTENT_VECTOR] for rec in records],
            documents=[rec[FIELD_CONTENT] for rec in records],
            metadatas=metadatas,
        )

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        knowledge_name: str | None = None,
    ) -> list[dict[str, Any]]:
        include = ["documents", "metadatas", "distances"]
        if self.include_vectors:
            include.append("embeddings")

        results = self.collection.query(
            query_embeddings=[query_embedding],
            n_results=k,
            where=_build_chroma_where(knowledge_name),
            include=include,
        )

        ids = _first(results, "ids") or []
        docs = _first(results, "documents") or [None] * len(ids)
        metas = _first(results, "metadatas") or [None] * len(ids)
        distances = _first(results, "distances") or [None] * len(ids)
        vectors = _first(results, "embeddings") if self.include_vectors else None

        hits: list[dict[str, Any]] = []
        for i, doc_id in enumerate(ids):
            source: dict[str, Any] = {FIELD_CONTENT: docs[i] or "", **(metas[i] or {})}
            if vectors is not None:
                source[FIELD_CONTENT_VECTOR] = [float(x) for x in vectors[i]]
            # Chroma returns cosine distance; similarity is its complement.
            score = None if distances[i] is None else 1.0 - float(distances[i])
            hits.append({"id": doc_id, "source": source, "score": score})
        return hits

    def health_check(self) -> bool:
        try:
            self._client.heartbeat()
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False

    def delete(self, ids: list[str]) -> None:
        self.collection.delete(ids=ids)
