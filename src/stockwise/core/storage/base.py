"""
Abstract base class for document stores.

A document store holds a handful of named text documents (the holdings
ledger, the advice ledger, the provider list).  Every write keeps a
timestamped backup of the content it replaces.
"""

from abc import ABC, abstractmethod


class DocumentStore(ABC):
    """Abstract base class for document storage backends."""

    def __init__(self, **config):
        self.config = config

    @abstractmethod
    async def read(self, key: str) -> str:
        """Return the text of a document. Raises StorageKeyError if not found."""

    @abstractmethod
    async def write(self, key: str, text: str) -> str | None:
        """Replace a document, backing up the previous content first.

        Returns:
            Identifier of the backup taken, or None if there was nothing to back up.
        """

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if a document exists."""

    @abstractmethod
    async def list_backups(self, key: str) -> list[str]:
        """List backups of a document, newest first."""

    @abstractmethod
    async def check_available(self) -> None:
        """Raise StorageError if the store cannot be read from and written to."""

    async def read_or_default(self, key: str, default: str = "") -> str:
        """Return the document text, or *default* when it doesn't exist yet."""
        try:
            return await self.read(key)
        except StorageKeyError:
            return default


class StorageError(Exception):
    """Base exception for storage errors."""


class StorageKeyError(StorageError, KeyError):
    """Raised when a document key doesn't exist."""


class StoragePermissionError(StorageError):
    """Raised when a storage operation is not permitted."""
