"""Small helpers shared across pipeline stages."""

from __future__ import annotations

import os
import threading
import time
import uuid
from urllib.parse import urlparse

from ragx.errors import OperationCancelled

_id_lock = threading.Lock()
_last_ms = 0
_last_seq = 0


def new_id() -> str:
    """Return a UUIDv7 string.

    The leading 48 bits are the Unix time in milliseconds and the next 12
    bits a per-millisecond counter, so ids generated by this process sort
    by creation time.  The remaining 62 bits are random.
    """
    global _last_ms, _last_seq

    with _id_lock:
        ms = time.time_ns() // 1_000_000
        if ms > _last_ms:
            _last_ms, _last_seq = ms, 0
        else:
            # same millisecond, or the clock went backwards
            _last_seq += 1
            if _last_seq > 0xFFF:
                _last_ms, _last_seq = _last_ms + 1, 0
        ms, seq = _last_ms, _last_seq

    rand = int.from_bytes(os.urandom(8), "big") & ((1 << 62) - 1)
    value = (ms & ((1 << 48) - 1)) << 80
    value |= 0x7 << 76
    value |= seq << 64
    value |= 0b10 << 62
    value |= rand
    return str(uuid.UUID(int=value))


def is_url(uri: str) -> bool:
    """Return ``True`` when *uri* is an absolute URL with scheme and host."""
    try:
        parsed = urlparse(uri)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def raise_if_cancelled(cancel: threading.Event | None, stage: str) -> None:
    """Raise :class:`OperationCancelled` when *cancel* has been set."""
    if cancel is not None and cancel.is_set():
        raise OperationCancelled(stage)
