"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import math
from typing import Any

import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding

from ragx.retrieval.base import VectorStoreBase

EMBEDDING_DIMS = 8


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fake vector store for deterministic testing ─────────────────────────


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class FakeVectorStore(VectorStoreBase):
    """In-memory store that ranks records by cosine similarity.

    ``canned_hits`` replaces the computed hits when set; ``fail_on_batch``
    makes the n-th (1-based) ``write`` call raise.
    """

    def __init__(self, dimensions: int = EMBEDDING_DIMS) -> None:
        super().__init__("test-index", dimensions)
        self.records: dict[str, dict[str, Any]] = {}
        self.writes: list[list[dict[str, Any]]] = []
        self.schema_calls = 0
        self.canned_hits: list[dict[str, Any]] | None = None
        self.fail_on_batch: int | None = None
        self.query_error: Exception | None = None
        self.last_knowledge_name: str | None = None
        self.last_k: int | None = None

    def ensure_schema(self) -> None:
        self.schema_calls += 1

    def write(self, records: list[dict[str, Any]]) -> None:
        if self.fail_on_batch is not None and len(self.writes) + 1 == self.fail_on_batch:
            raise ConnectionError("store unavailable")
        self.writes.append(records)
        for rec in records:
            self.records[rec["id"]] = rec

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        knowledge_name: str | None = None,
    ) -> list[dict[str, Any]]:
        self.last_knowledge_name = knowledge_name
        self.last_k = k
        if self.query_error is not None:
            raise self.query_error
        if self.canned_hits is not None:
            return self.canned_hits[:k]

        scored = []
        for rec in self.records.values():
            if knowledge_name and rec["_knowledge_name"] != knowledge_name:
                continue
            source = {key: rec[key] for key in ("content", "ext", "_knowledge_name")}
            scored.append({"id": rec["id"], "source": source, "score": _cosine(query_embedding, rec["content_vector"])})
        scored.sort(key=lambda hit: hit["score"], reverse=True)
        return scored[:k]

    def health_check(self) -> bool:
        return True


@pytest.fixture()
def fake_store() -> FakeVectorStore:
    return FakeVectorStore()


@pytest.fixture()
def embedder() -> DeterministicFakeEmbedding:
    return DeterministicFakeEmbedding(size=EMBEDDING_DIMS)
