"""Exception hierarchy for the ingestion and retrieval pipeline.

Every stage raises a subclass of :class:`RagxError` and stops on the first
failure.  Nothing here is retried; callers wrapping the pipeline own any
retry policy.
"""

from __future__ import annotations

from typing import Any


class RagxError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class OperationCancelled(RagxError):
    """Raised when a stage observes its cancel token set."""

    def __init__(self, stage: str) -> None:
        super().__init__(f"{stage} cancelled", {"stage": stage})


# -- loader -------------------------------------------------------------------


class SourceUnreachable(RagxError):
    """The source could not be read (file I/O or network failure)."""

    def __init__(self, uri: str, reason: str) -> None:
        super().__init__(f"Source unreachable: {uri}", {"uri": uri, "reason": reason})


class UnsupportedFormat(RagxError):
    """A parser rejected the source content."""

    def __init__(self, uri: str, extension: str, reason: str) -> None:
        super().__init__(
            f"Cannot parse {uri} as {extension or 'text'}",
            {"uri": uri, "extension": extension, "reason": reason},
        )


# -- indexer ------------------------------------------------------------------


class MissingPartitionKey(RagxError):
    """``store`` was called without a knowledge name."""

    def __init__(self) -> None:
        super().__init__("A knowledge name is required to store passages")


class StoreWriteFailed(RagxError):
    """A batch write to the vector store failed."""

    def __init__(self, batch: int, reason: str) -> None:
        super().__init__(f"Vector store write failed on batch {batch}", {"batch": batch, "reason": reason})


# -- retriever ----------------------------------------------------------------


class IndexSpaceMismatch(RagxError):
    """An existing index uses a distance space other than cosine."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(
            f"Index uses {actual} distance, expected {expected}",
            {"expected": expected, "actual": actual},
        )


class EmbeddingDimensionMismatch(RagxError):
    """Embedding length does not match the index dimensionality."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Embedding has {actual} dimensions, index expects {expected}",
            {"expected": expected, "actual": actual},
        )


class SchemaViolation(RagxError):
    """A search hit carried a field outside the index schema."""

    def __init__(self, field: str, hit_id: str | None = None) -> None:
        super().__init__(f"Unexpected field in search hit: {field}", {"field": field, "hit_id": hit_id})


class StoreQueryFailed(RagxError):
    """The similarity query against the vector store failed."""

    def __init__(self, reason: str) -> None:
        super().__init__("Vector store query failed", {"reason": reason})
