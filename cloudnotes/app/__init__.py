"""Client-side application state and relays."""

from .application import NotesApp
from .dispatch import Dispatcher, InlineExecutor
from .mutations import FailurePolicy, MutationState, MutationTracker, PendingMutation
from .state import Note, NoteCollection, SessionState, SyncState

__all__ = [
    "NotesApp",
    "Dispatcher",
    "InlineExecutor",
    "FailurePolicy",
    "MutationState",
    "MutationTracker",
    "PendingMutation",
    "Note",
    "NoteCollection",
    "SessionState",
    "SyncState",
]
