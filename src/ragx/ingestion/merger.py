"""Id assignment and re-merging of oversplit Markdown passages.

The Markdown splitter cuts at every heading, which leaves many tiny
passages.  :func:`finalize` walks them once, left to right, and glues
neighbours back together while they share a source, an ``h1`` scope and a
compatible ``h2`` scope and stay within ``max_length`` characters.

Only one accumulator is open at a time, so memory stays bounded no matter
how long the batch is.
"""

from __future__ import annotations

import logging
import threading

from ragx.config import settings
from ragx.models import TITLE1, TITLE2, TITLE3, TITLE_KEYS, Passage
from ragx.utils import new_id, raise_if_cancelled

logger = logging.getLogger(__name__)


def assign_ids(passages: list[Passage]) -> list[Passage]:
    """Return *passages* with a fresh id on every passage that lacks one."""
    return [p if p.id else p.model_copy(update={"id": new_id()}) for p in passages]


def should_close(current: Passage | None, incoming: Passage, max_length: int = settings.merge_max_length) -> bool:
    """Return ``True`` when *current* must be emitted before taking *incoming*.

    Checked in order: different source, combined length over
    *max_length*, different ``h1``, and a set ``h2`` on *current* that
    *incoming* does not share.
    """
    if current is None:
        return False
    if incoming.source != current.source:
        return True
    if len(current.content) + len(incoming.content) > max_length:
        return True
    if incoming.metadata.get(TITLE1) != current.metadata.get(TITLE1):
        return True
    current_h2 = current.metadata.get(TITLE2)
    if current_h2 is not None and incoming.metadata.get(TITLE2) != current_h2:
        return True
    return False


def merge_title(metadata: dict, incoming: dict, key: str) -> None:
    """Fold ``incoming[key]`` into ``metadata[key]`` as a comma-joined label."""
    if metadata.get(key) == incoming.get(key):
        return
    titles = [t for t in (metadata.get(key), incoming.get(key)) if t]
    if titles:
        metadata[key] = ",".join(titles)


def absorb(current: Passage, incoming: Passage) -> None:
    """Append *incoming* to *current* in place.

    Bodies are concatenated with no separator.
    """
    merge_title(current.metadata, incoming.metadata, TITLE2)
    merge_title(current.metadata, incoming.metadata, TITLE3)
    current.content += incoming.content


def merge_passages(passages: list[Passage], max_length: int = settings.merge_max_length) -> list[Passage]:
    """Coalesce adjacent passages.  Inputs are copied, never mutated."""
    merged: list[Passage] = []
    current: Passage | None = None

    for p in passages:
        if should_close(current, p, max_length):
            merged.append(current)
            current = None

        if current is None:
            current = p.model_copy(deep=True)
        else:
            absorb(current, p)

    if current is not None:
        merged.append(current)
    return merged


def title_line(metadata: dict) -> str:
    """Return ``"h1:<v> h2:<v> ..."`` for the headings present in *metadata*."""
    return " ".join(
        f"{key}:{metadata[key]}"
        for key in TITLE_KEYS
        if isinstance(metadata.get(key), str) and metadata[key]
    )


def with_title(passage: Passage) -> Passage:
    title = title_line(passage.metadata)
    if not title:
        return passage
    return passage.model_copy(update={"content": f"{title}\n{passage.content}"})


def finalize(
    passages: list[Passage],
    *,
    max_length: int = settings.merge_max_length,
    cancel: threading.Event | None = None,
) -> list[Passage]:
    """Assign ids, then merge and title Markdown batches.

    Non-Markdown batches (judged by the first passage) come back with ids
    and otherwise unchanged.  An id that is already set is kept.

    Parameters
    ----------
    passages:
        Output of the splitter, in document order.
    max_length:
        Largest merged content length, in characters.  A single passage
        already longer than this is passed through on its own.
    cancel:
        Optional cancel token checked before work starts.
    """
    raise_if_cancelled(cancel, "finalize")
    passages = assign_ids(passages)
    if not passages or not passages[0].is_markdown():
        return passages

    merged = merge_passages(passages, max_length)
    logger.info("Merged %d passage(s) into %d", len(passages), len(merged))
    return [with_title(p) for p in merged]
