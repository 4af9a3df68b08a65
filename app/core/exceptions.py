"""Repository-level exceptions.

These never escape a repository operation: the repository downgrades them to
the per-type error string. They exist so the persistence adapter can report
*what* went wrong to the layer that records it.
"""

from typing import Optional


class RepositoryError(Exception):
    """Base repository exception."""

    def __init__(self, message: str, key: Optional[str] = None):
        self.message = message
        self.key = key
        super().__init__(message)


class PersistenceReadError(RepositoryError):
    """Durable data for a key is malformed or could not be read."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Failed to read '{key}': {reason}", key=key)


class PersistenceWriteError(RepositoryError):
    """A value could not be serialized or written for a key."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Failed to save '{key}': {reason}", key=key)
