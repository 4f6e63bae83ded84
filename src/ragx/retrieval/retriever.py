"""Knowledge retriever — similarity search with strict hit parsing.

The vector index is shared, so every hit is checked against the closed set
of index fields.  A field nobody declared (a leftover internal field, a
schema drift) fails the whole search instead of leaking to callers.

Usage::

    from ragx.retrieval import KnowledgeRetriever

    retriever = KnowledgeRetriever(store, embedder)
    for passage in retriever.search("How is the index created?", knowledge_name="kb1"):
        print(passage.score, passage.content[:80])
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from ragx.config import settings
from ragx.errors import SchemaViolation, StoreQueryFailed
from ragx.ingestion.embedder import check_dimensions
from ragx.models import FIELD_CONTENT, FIELD_CONTENT_VECTOR, FIELD_EXTRA, FIELD_KNOWLEDGE_NAME, Passage
from ragx.utils import raise_if_cancelled

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

    from ragx.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


def parse_hit(hit: dict[str, Any]) -> Passage:
    """Map a raw search hit onto a :class:`Passage`.

    Raises
    ------
    SchemaViolation
        The hit carries a field outside the index schema.
    """
    passage = Passage(id=hit.get("id") or "")

    for field, value in hit.get("source", {}).items():
        if field == FIELD_CONTENT:
            passage.content = value or ""
        elif field == FIELD_CONTENT_VECTOR:
            passage.vector = [float(x) for x in value]
        elif field == FIELD_EXTRA:
            if not value:
                continue
            passage.metadata[FIELD_EXTRA] = value
        elif field == FIELD_KNOWLEDGE_NAME:
            passage.metadata[FIELD_KNOWLEDGE_NAME] = value
        else:
            raise SchemaViolation(field, hit_id=hit.get("id"))

    if hit.get("score") is not None:
        passage.score = float(hit["score"])
    return passage


class KnowledgeRetriever:
    """Embed a query and search the vector store.

    Parameters
    ----------
    store:
        Vector-store backend written by :class:`~ragx.ingestion.indexer.KnowledgeIndexer`.
    embedder:
        The same embeddings used at indexing time.
    default_k:
        Default number of results returned by :meth:`search`.
    score_threshold:
        Minimum similarity score; hits below it are discarded.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        embedder: Embeddings,
        *,
        default_k: int = settings.retrieval_top_k,
        score_threshold: float | None = None,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self.default_k = default_k
        self.score_threshold = score_threshold

    def search(
        self,
        query: str,
        *,
        knowledge_name: str | None = None,
        k: int | None = None,
        cancel: threading.Event | None = None,
    ) -> list[Passage]:
        """Return the passages most similar to *query*.

        Parameters
        ----------
        query:
            Natural-language query string.
        knowledge_name:
            Restrict the search to one partition.
        k:
            Number of results (defaults to ``self.default_k``).  Must be at least 1.
        cancel:
            Optional cancel token.

        Raises
        ------
        ValueError
            *k* is less than 1.
        EmbeddingDimensionMismatch
            The query embedding does not fit the index.
        StoreQueryFailed
            The backend query failed.
        SchemaViolation
            A hit carried an unknown field; no passages are returned.
        """
        k = k if k is not None else self.default_k
        if k < 1:
            raise ValueError(f"k must be positive, got {k}")
        raise_if_cancelled(cancel, "search")

        embedding = self._embedder.embed_query(query)
        check_dimensions([embedding], self._store.dimensions)

        raise_if_cancelled(cancel, "search")
        try:
            hits = self._store.similarity_search(list(embedding), k=k, knowledge_name=knowledge_name)
        except Exception as exc:
            raise StoreQueryFailed(str(exc)) from exc

        passages = [parse_hit(hit) for hit in hits]
        if self.score_threshold is not None:
            passages = [p for p in passages if p.score is None or p.score >= self.score_threshold]

        logger.info("Retrieved %d passage(s) for knowledge %r", len(passages), knowledge_name)
        return passages
