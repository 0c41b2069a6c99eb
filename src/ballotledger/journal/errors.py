from __future__ import annotations


class JournalError(RuntimeError):
    """Base class for journal errors."""


class JournalWriteError(JournalError):
    """Raised when an append operation fails."""


class JournalConflictError(JournalWriteError):
    """Raised when the journal tail is not the one the writer last saw."""


class JournalVerificationError(JournalError):
    """Raised when journal verification or replay fails."""


def sanitize_exception(exc: Exception) -> str:
    """Return a safe error message without filesystem paths."""
    if isinstance(exc, OSError):
        parts: list[str] = [exc.__class__.__name__]
        if exc.errno is not None:
            parts.append(f"errno={exc.errno}")
        if exc.strerror:
            parts.append(exc.strerror)
        return " ".join(parts).strip()
    return str(exc)
