"""Abstract base class for vector-store backends.

Adding a new backend (Elasticsearch, Qdrant …) only requires subclassing
:class:`VectorStoreBase` and implementing the abstract methods.  Indexing
and retrieval only ever talk to this interface.

Records written to the store, and the ``source`` mapping of every search
hit, use the index field names from :mod:`ragx.models`:
``content``, ``content_vector``, ``ext`` and ``_knowledge_name``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ragx.config import settings


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface.

    Parameters
    ----------
    index_name:
        Logical name of the index / collection.
    dimensions:
        Fixed length of the ``content_vector`` field.
    """

    def __init__(self, index_name: str, dimensions: int = settings.embedding_dimensions) -> None:
        self.index_name = index_name
        self.dimensions = dimensions

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create the index if it does not exist yet.

        Creation declares ``content`` as full text, ``ext`` as full text,
        ``_knowledge_name`` as an exact-match keyword and
        ``content_vector`` as a dense vector of :attr:`dimensions` using
        cosine similarity.  An index that already exists is success, even
        when another process created it concurrently.

        Raises
        ------
        EmbeddingDimensionMismatch
            The existing index was created with another dimensionality.
        """
        ...

    @abstractmethod
    def write(self, records: list[dict[str, Any]]) -> None:
        """Write one batch of records.

        Each record holds ``id``, ``content``, ``content_vector``, ``ext``
        and ``_knowledge_name``.  Any exception propagates to the caller.
        """
        ...

    @abstractmethod
    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        knowledge_name: str | None = None,
    ) -> list[dict[str, Any]]:
        """Return the top-*k* hits closest to *query_embedding*.

        Each hit dict contains:

        * ``"id"`` – record identifier
        * ``"source"`` – mapping of every stored field returned by the backend
        * ``"score"`` – cosine similarity (higher = more similar), or ``None``

        Parameters
        ----------
        query_embedding:
            Dense vector for the query.
        k:
            Number of hits to return.
        knowledge_name:
            When set, only records of this partition are searched.
        """
        ...

    @abstractmethod
    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...

    # -- optional overrides ---------------------------------------------------

    def delete(self, ids: list[str]) -> None:
        """Delete records by their IDs.  Optional — raises by default."""
        raise NotImplementedError(f"{type(self).__name__} does not support delete")
