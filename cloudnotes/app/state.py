"""Client-side application state: the session flag and the note collection."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator, List, Optional

from cloudnotes.services.notes.models import NoteRecord

LOGGER = logging.getLogger(__name__)


def new_id() -> str:
    return str(uuid.uuid4())


class SyncState(str, Enum):
    SYNCED = "synced"
    PENDING = "pending"
    DESYNCHRONIZED = "desynchronized"


@dataclass(eq=False)
class Note:
    """A note as held by the client. Mutable; identity is the object."""

    id: str
    name: str
    description: Optional[str] = None
    image_name: Optional[str] = None
    # Blob bytes attached by the image relay once downloaded
    image: Optional[bytes] = field(default=None, repr=False)
    sync_state: SyncState = SyncState.SYNCED

    @classmethod
    def new(
        cls,
        name: str,
        description: Optional[str] = None,
        image_name: Optional[str] = None,
    ) -> "Note":
        return cls(
            id=new_id(),
            name=name,
            description=description,
            image_name=image_name,
            sync_state=SyncState.PENDING,
        )

    @classmethod
    def from_record(cls, record: NoteRecord) -> "Note":
        return cls(
            id=record.id,
            name=record.name,
            description=record.description,
            image_name=record.image,
        )

    def to_record(self) -> NoteRecord:
        return NoteRecord(
            id=self.id,
            name=self.name,
            description=self.description,
            image=self.image_name,
        )

    @property
    def has_image(self) -> bool:
        return bool(self.image_name)


class SessionState:
    """
    The signed-in flag.

    ``generation`` increases on every transition so that work started under
    one session can tell whether that session is still the one in place.
    """

    def __init__(self) -> None:
        self.signed_in: bool = False
        self.generation: int = 0

    def sign_in(self) -> int:
        self.signed_in = True
        self.generation += 1
        LOGGER.debug("session.signed_in generation=%d", self.generation)
        return self.generation

    def sign_out(self) -> None:
        self.signed_in = False
        self.generation += 1
        LOGGER.debug("session.signed_out generation=%d", self.generation)

    def is_current(self, generation: int) -> bool:
        return self.signed_in and generation == self.generation

    def unchanged_since(self, generation: int) -> bool:
        """True if no sign-in or sign-out happened after ``generation``."""
        return generation == self.generation


class CollectionEvent(str, Enum):
    REPLACED = "replaced"
    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"
    CLEARED = "cleared"


Observer = Callable[[CollectionEvent, Optional[Note]], None]


class NoteCollection:
    """
    Ordered, in-memory list of notes. Not persisted, not paginated.

    Observers are told about every change so a view can re-render.
    """

    def __init__(self) -> None:
        self._notes: List[Note] = []
        self._observers: List[Observer] = []

    # ----- Observation -----

    def observe(self, observer: Observer) -> Callable[[], None]:
        self._observers.append(observer)

        def unobserve() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unobserve

    def _notify(self, event: CollectionEvent, note: Optional[Note] = None) -> None:
        for observer in list(self._observers):
            observer(event, note)

    # ----- Read -----

    def __iter__(self) -> Iterator[Note]:
        return iter(list(self._notes))

    def __len__(self) -> int:
        return len(self._notes)

    def __getitem__(self, index: int) -> Note:
        return self._notes[index]

    def __contains__(self, note: object) -> bool:
        return any(n is note for n in self._notes)

    def get(self, note_id: str) -> Optional[Note]:
        for note in self._notes:
            if note.id == note_id:
                return note
        return None

    def index_of(self, note: Note) -> int:
        for i, n in enumerate(self._notes):
            if n is note:
                return i
        raise ValueError(f"Note {note.id} is not in the collection")

    def ids(self) -> List[str]:
        return [n.id for n in self._notes]

    # ----- Write -----

    def replace_all(self, notes: List[Note]) -> None:
        self._notes = list(notes)
        self._notify(CollectionEvent.REPLACED)

    def append(self, note: Note) -> None:
        self._notes.append(note)
        self._notify(CollectionEvent.ADDED, note)

    def insert(self, index: int, note: Note) -> None:
        self._notes.insert(min(max(index, 0), len(self._notes)), note)
        self._notify(CollectionEvent.ADDED, note)

    def remove(self, note: Note) -> int:
        """Remove ``note`` and return the index it held."""
        index = self.index_of(note)
        del self._notes[index]
        self._notify(CollectionEvent.REMOVED, note)
        return index

    def touch(self, note: Note) -> None:
        """Announce an in-place change of ``note``."""
        if note in self:
            self._notify(CollectionEvent.CHANGED, note)

    def clear(self) -> None:
        self._notes = []
        self._notify(CollectionEvent.CLEARED)
