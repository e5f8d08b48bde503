"""Domain exceptions shared by the runtimes."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class PersistenceError(RuntimeError):
    """
    Raised when a persisted JSON document cannot be read or written.

    The store never leaves a partial document behind, so callers may
    simply retry on the next cycle.
    """

    def __init__(self, message: str, *, path: Optional[Path] = None, retryable: bool = True):
        super().__init__(message)
        self.path = path
        self.retryable = retryable


class LinkIngestError(RuntimeError):
    """Raised when an OAuth link attempt cannot be completed."""

    def __init__(self, message: str, *, user_message: str):
        super().__init__(message)
        self.user_message = user_message


class LinkLimitError(RuntimeError):
    """Raised when a platform already holds its configured number of links."""

    def __init__(self, platform: str, limit: int):
        super().__init__(f"{platform} link limit of {limit} reached")
        self.platform = platform
        self.limit = limit
