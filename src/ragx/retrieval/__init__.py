"""
Retrieval — vector search over knowledge partitions.

This package wraps the vector store behind a clean interface so that
callers never need to know which DB is backing retrieval.

Public surface
--------------
- :class:`KnowledgeRetriever` — embeds a query and returns parsed passages.
- :func:`parse_hit` — maps one raw hit onto a passage, enforcing the schema.
- :class:`VectorStoreBase` — abstract backend (subclass for other stores).
- :class:`ChromaVectorStore` — default Chroma backend.
"""

from ragx.retrieval.base import VectorStoreBase
from ragx.retrieval.retriever import KnowledgeRetriever, parse_hit

__all__ = [
    "ChromaVectorStore",
    "KnowledgeRetriever",
    "VectorStoreBase",
    "parse_hit",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaVectorStore to avoid pulling in chromadb at import time."""
    if name == "ChromaVectorStore":
        from ragx.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
