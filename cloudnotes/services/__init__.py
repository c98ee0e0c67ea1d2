"""Remote services."""

from cloudnotes.services.auth import AuthService
from cloudnotes.services.notes import NotesService
from cloudnotes.services.storage import StorageService

__all__ = ["AuthService", "NotesService", "StorageService"]
