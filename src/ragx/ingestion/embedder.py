"""Embedding function shared by indexing and retrieval."""

from __future__ import annotations

from typing import TYPE_CHECKING

from langchain_huggingface import HuggingFaceEmbeddings

from ragx.config import settings
from ragx.errors import EmbeddingDimensionMismatch

if TYPE_CHECKING:
    from collections.abc import Sequence


def get_embedding_function() -> HuggingFaceEmbeddings:
    """Return the configured sentence-transformer embedding function."""
    return HuggingFaceEmbeddings(model_name=settings.embedding_model)


def check_dimensions(vectors: Sequence[Sequence[float]], dimensions: int) -> None:
    """Raise :class:`EmbeddingDimensionMismatch` if any vector has the wrong length."""
    for vector in vectors:
        if len(vector) != dimensions:
            raise EmbeddingDimensionMismatch(expected=dimensions, actual=len(vector))
