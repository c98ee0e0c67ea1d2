"""Public API for the image storage service."""

from .service import StorageError, StorageNotFound, StorageService

__all__ = ["StorageService", "StorageError", "StorageNotFound"]
