"""End-to-end ingestion: load → split → merge → index."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from ragx.config import settings
from ragx.errors import MissingPartitionKey
from ragx.ingestion.chunker import MultiTransformer
from ragx.ingestion.loader import MultiLoader
from ragx.ingestion.merger import finalize
from ragx.models import Source

if TYPE_CHECKING:
    from ragx.ingestion.indexer import KnowledgeIndexer

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Run one source at a time through every ingestion stage.

    The first error from any stage is re-raised unchanged.
    """

    def __init__(
        self,
        indexer: KnowledgeIndexer,
        *,
        loader: MultiLoader | None = None,
        transformer: MultiTransformer | None = None,
        merge_max_length: int = settings.merge_max_length,
    ) -> None:
        self.indexer = indexer
        self.loader = loader or MultiLoader()
        self.transformer = transformer or MultiTransformer()
        self.merge_max_length = merge_max_length

    def ingest(
        self,
        source: Source | str,
        knowledge_name: str,
        *,
        cancel: threading.Event | None = None,
    ) -> list[str]:
        """Index *source* under *knowledge_name* and return the stored ids."""
        if not knowledge_name:
            raise MissingPartitionKey()
        if isinstance(source, str):
            source = Source(uri=source)

        try:
            docs = self.loader.load(source, cancel=cancel)
            passages = self.transformer.transform(docs, cancel=cancel)
            passages = finalize(passages, max_length=self.merge_max_length, cancel=cancel)
            ids = self.indexer.store(passages, knowledge_name, cancel=cancel)
        except Exception:
            logger.exception("Ingestion of %s into %r failed", source.uri, knowledge_name)
            raise

        logger.info("Ingested %s into %r: %d passage(s)", source.uri, knowledge_name, len(ids))
        return ids
