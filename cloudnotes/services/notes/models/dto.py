"""High-level Notes data transfer objects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .graphql import NoteData


@dataclass(frozen=True)
class NoteRecord:
    """A note as returned by ``NotesService``."""

    id: str
    name: str
    description: Optional[str] = None
    image: Optional[str] = None

    @property
    def has_image(self) -> bool:
        return bool(self.image)

    @classmethod
    def from_data(cls, data: NoteData) -> "NoteRecord":
        return cls(
            id=data.id,
            name=data.name,
            description=data.description,
            image=data.image,
        )

    def to_data(self) -> NoteData:
        return NoteData(
            id=self.id,
            name=self.name,
            description=self.description,
            image=self.image,
        )
