"""Public API for the Notes service."""

from .client import GraphQLNotesClient, NotesApiError, NotesAuthError, NotesError
from .models import NoteData, NoteRecord
from .service import NoteNotFound, NotesService

__all__ = [
    "NotesService",
    "NoteRecord",
    "NoteData",
    "NoteNotFound",
    "GraphQLNotesClient",
    "NotesError",
    "NotesApiError",
    "NotesAuthError",
]
