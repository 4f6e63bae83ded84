"""Text chunking strategies."""

from __future__ import annotations

import logging
import threading
from typing import Literal

from langchain_text_splitters import MarkdownHeaderTextSplitter, RecursiveCharacterTextSplitter

from ragx.config import settings
from ragx.models import TITLE1, TITLE2, TITLE3, Passage
from ragx.utils import raise_if_cancelled

logger = logging.getLogger(__name__)

SplitterKind = Literal["markdown", "recursive"]

HEADERS_TO_SPLIT_ON = [("#", TITLE1), ("##", TITLE2), ("###", TITLE3)]


def splitter_kind_for(passages: list[Passage]) -> SplitterKind:
    """Pick the splitter for a whole batch from its first passage.

    Mixed batches take on the type of their first element.
    """
    if passages and passages[0].is_markdown():
        return "markdown"
    return "recursive"


def split_markdown(passages: list[Passage], splitter: MarkdownHeaderTextSplitter) -> list[Passage]:
    """Split each passage at heading marks, tagging chunks with ``h1``..``h3``."""
    out: list[Passage] = []
    for parent in passages:
        for chunk in splitter.split_text(parent.content):
            out.append(Passage(content=chunk.page_content, metadata={**parent.metadata, **chunk.metadata}))
    return out


def split_recursive(passages: list[Passage], splitter: RecursiveCharacterTextSplitter) -> list[Passage]:
    """Split each passage into overlapping fixed-size chunks."""
    docs = splitter.split_documents([p.to_document() for p in passages])
    return [Passage.from_document(d) for d in docs]


class MultiTransformer:
    """Split a batch of passages with the Markdown or the recursive splitter.

    Parameters
    ----------
    chunk_size:
        Maximum number of characters per recursive chunk.
    chunk_overlap:
        Characters shared between consecutive recursive chunks.
    separators:
        Preferred break points, tried in order before a hard character cut.

    Raises
    ------
    ValueError
        If *chunk_overlap* exceeds *chunk_size*.
    """

    def __init__(
        self,
        chunk_size: int = settings.chunk_size,
        chunk_overlap: int = settings.chunk_overlap,
        separators: list[str] | None = None,
    ) -> None:
        if chunk_overlap > chunk_size:
            raise ValueError(f"chunk_overlap ({chunk_overlap}) must not exceed chunk_size ({chunk_size})")

        separators = list(separators if separators is not None else settings.chunk_separators)
        if "" not in separators:
            separators.append("")

        self.recursive = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            length_function=len,
            separators=separators,
            keep_separator="end",
        )
        self.markdown = MarkdownHeaderTextSplitter(
            headers_to_split_on=HEADERS_TO_SPLIT_ON,
            strip_headers=False,
        )

    def transform(self, passages: list[Passage], *, cancel: threading.Event | None = None) -> list[Passage]:
        """Split *passages* into smaller passages.  Outputs carry no id."""
        raise_if_cancelled(cancel, "transform")
        kind = splitter_kind_for(passages)
        if kind == "markdown":
            out = split_markdown(passages, self.markdown)
        else:
            out = split_recursive(passages, self.recursive)
        logger.info("Split %d document(s) into %d passage(s) with %s splitter", len(passages), len(out), kind)
        return out
