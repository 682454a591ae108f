"""Exceptions raised by the journal store, search and remote layers."""

from __future__ import annotations

from typing import Optional


class JournalError(Exception):
    """Base exception for journal operations."""
    pass


class UsageError(JournalError, ValueError):
    """Raised for malformed input detected before any I/O happens."""
    pass


class StorageError(JournalError):
    """Raised when local storage fails for a reason other than not-found."""
    pass


class DerivationError(JournalError):
    """Raised when a search vector cannot be derived from text."""
    pass


class TransportError(JournalError):
    """Raised when the remote journal server cannot be reached or refuses a call."""
    pass


class RemoteError(TransportError):
    """Non-2xx response from the remote journal server."""

    def __init__(self, status: int, body: str, reason: Optional[str] = None):
        self.status = status
        self.body = body
        self.reason = reason or ""
        status_line = f"{status} {self.reason}" if self.reason else str(status)
        super().__init__(f"Remote server error: {status_line} - {body}")
