"""
Document storage for stockwise.

Provides an async read/write interface over named text documents with
automatic backups (local filesystem by default).
"""

from .base import (
    DocumentStore,
    StorageError,
    StorageKeyError,
    StoragePermissionError,
)
from .local import LocalDocumentStore

__all__ = [
    "DocumentStore",
    "LocalDocumentStore",
    "StorageError",
    "StorageKeyError",
    "StoragePermissionError",
]
