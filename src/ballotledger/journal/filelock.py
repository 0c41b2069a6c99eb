"""Exclusive file locking for the JSONL journal.

Uses ``msvcrt.locking`` on Windows and advisory ``fcntl.flock`` elsewhere;
every writer of a journal file must go through :func:`locked_file`.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, TextIO

# msvcrt.locking() needs a byte count; one byte is enough for a whole-file mutex.
_WINDOWS_LOCK_BYTES = 1

_lock_module: Any
if os.name == "nt":
    import msvcrt as _lock_module
else:
    import fcntl as _lock_module


def _acquire(handle: TextIO) -> None:
    if os.name == "nt":
        _lock_module.locking(handle.fileno(), _lock_module.LK_LOCK, _WINDOWS_LOCK_BYTES)
    else:
        _lock_module.flock(handle.fileno(), _lock_module.LOCK_EX)


def _release(handle: TextIO) -> None:
    if os.name == "nt":
        _lock_module.locking(handle.fileno(), _lock_module.LK_UNLCK, _WINDOWS_LOCK_BYTES)
    else:
        _lock_module.flock(handle.fileno(), _lock_module.LOCK_UN)


@contextmanager
def locked_file(path: Path) -> Iterator[TextIO]:
    """Open ``path`` in a+ mode and hold an exclusive lock for the block.

    The handle is positioned at end of file once the lock is held.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = path.open("a+", encoding="utf-8", newline="")
    try:
        handle.seek(0)
        _acquire(handle)
        handle.seek(0, os.SEEK_END)
        yield handle
    finally:
        try:
            handle.seek(0)
            _release(handle)
        finally:
            handle.close()
