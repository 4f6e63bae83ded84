"""Embedding and vector-store persistence."""

from __future__ import annotations

import json
import logging
import threading
from typing import TYPE_CHECKING, Any

from ragx.config import settings
from ragx.errors import MissingPartitionKey, StoreWriteFailed
from ragx.ingestion.embedder import check_dimensions
from ragx.models import (
    EXT_KEYS,
    FIELD_CONTENT,
    FIELD_CONTENT_VECTOR,
    FIELD_EXTRA,
    FIELD_KNOWLEDGE_NAME,
    Passage,
)
from ragx.utils import new_id, raise_if_cancelled

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

    from ragx.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


def get_ext_data(metadata: dict[str, Any]) -> dict[str, Any]:
    """Keep only the whitelisted metadata keys."""
    return {key: metadata[key] for key in EXT_KEYS if key in metadata}


def to_record(passage: Passage, vector: list[float], knowledge_name: str) -> dict[str, Any]:
    """Project *passage* onto the index fields; everything else is dropped."""
    return {
        "id": passage.id,
        FIELD_CONTENT: passage.content,
        FIELD_CONTENT_VECTOR: vector,
        FIELD_EXTRA: json.dumps(get_ext_data(passage.metadata), ensure_ascii=False),
        FIELD_KNOWLEDGE_NAME: knowledge_name,
    }


class KnowledgeIndexer:
    """Embed passages and write them, tagged with a partition, to a store.

    Parameters
    ----------
    store:
        Vector-store backend.
    embedder:
        LangChain embeddings used for ``content``.
    batch_size:
        Number of passages per write.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        embedder: Embeddings,
        *,
        batch_size: int = settings.index_batch_size,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self._store = store
        self._embedder = embedder
        self.batch_size = batch_size

    def ensure_schema(self) -> None:
        """Create the backing index if it is missing."""
        self._store.ensure_schema()

    def store(
        self,
        passages: list[Passage],
        knowledge_name: str | None,
        *,
        cancel: threading.Event | None = None,
    ) -> list[str]:
        """Embed and write *passages* under *knowledge_name*.

        Batches are written in input order; a failing batch stops the call
        and batches already written stay in the store.

        Returns
        -------
        list[str]
            Passage ids, in input order.

        Raises
        ------
        MissingPartitionKey
            *knowledge_name* is empty.  Nothing is written.
        EmbeddingDimensionMismatch
            The embedder returned vectors of the wrong length.
        StoreWriteFailed
            The backend rejected a batch.
        """
        if not knowledge_name:
            raise MissingPartitionKey()
        raise_if_cancelled(cancel, "store")

        passages = [p if p.id else p.model_copy(update={"id": new_id()}) for p in passages]

        for start in range(0, len(passages), self.batch_size):
            raise_if_cancelled(cancel, "store")
            batch = passages[start : start + self.batch_size]
            batch_no = start // self.batch_size + 1

            vectors = self._embedder.embed_documents([p.content for p in batch])
            check_dimensions(vectors, self._store.dimensions)
            records = [to_record(p, list(v), knowledge_name) for p, v in zip(batch, vectors)]

            try:
                self._store.write(records)
            except Exception as exc:
                raise StoreWriteFailed(batch_no, str(exc)) from exc
            logger.debug("Wrote batch %d (%d passages) to %r", batch_no, len(batch), knowledge_name)

        logger.info("Indexed %d passage(s) into knowledge %r", len(passages), knowledge_name)
        return [p.id for p in passages]
