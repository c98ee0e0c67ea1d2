"""
High-level Notes service.

Public API:
  - NotesService.list(page_size=None) -> List[NoteRecord]
  - NotesService.iter_all(page_size=None) -> Iterable[NoteRecord]
  - NotesService.create(record) -> NoteRecord
  - NotesService.update(note_id, **fields) -> NoteRecord
  - NotesService.delete(note_id) -> NoteRecord
  - NotesService.raw -> GraphQLNotesClient (escape hatch)

Ordering is whatever the API returns; nothing here sorts.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional

from cloudnotes.services.base import BaseService
from cloudnotes.services.http import HttpClient

from .client import GraphQLNotesClient, NotesError
from .models import NoteRecord
from .models.graphql import CreateNoteInput, UpdateNoteInput

LOGGER = logging.getLogger(__name__)

_UNSET = object()


# ----------------------------- Service Errors --------------------------------


class NoteNotFound(NotesError):
    pass


# ----------------------------- NotesService ----------------------------------


class NotesService(BaseService):
    """
    Developer-first Notes API. Uses the preconfigured GraphQL raw client under the hood.
    """

    def __init__(
        self,
        service_root: str,
        session,
        params: Optional[Dict[str, object]] = None,
        *,
        config=None,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
    ):
        super().__init__(
            service_root=service_root,
            session=session,
            params=params,
            config=config,
            token_provider=token_provider,
        )
        http = HttpClient(
            self.service_root,
            session,
            self.params,
            token_provider=token_provider,
            timeout=self.config.request_timeout,
            retry_attempts=self.config.retry_attempts,
            retry_min_wait=self.config.retry_min_wait,
            retry_max_wait=self.config.retry_max_wait,
        )
        self._raw = GraphQLNotesClient(http)

    # -------------------------- Public API methods ---------------------------

    def iter_all(self, *, page_size: Optional[int] = None) -> Iterable[NoteRecord]:
        """
        Iterate every note, following `nextToken` until the API is exhausted.
        Records are yielded in API order.
        """
        token: Optional[str] = None
        page = 1
        while True:
            LOGGER.debug("Fetching notes page %d", page)
            conn = self._raw.list_notes(limit=page_size, next_token=token)
            for item in conn.items:
                # AppSync returns null items for records the caller can't read
                if item is not None:
                    yield NoteRecord.from_data(item)
            token = conn.nextToken
            if not token:
                LOGGER.debug("Notes: no more pages, done.")
                return
            page += 1

    def list(self, *, page_size: Optional[int] = None) -> List[NoteRecord]:
        """Fetch the full note collection in API order."""
        records = list(self.iter_all(page_size=page_size))
        LOGGER.info("Fetched %d notes", len(records))
        return records

    def create(self, record: NoteRecord) -> NoteRecord:
        """Persist a note created client-side (its id is already assigned)."""
        data = self._raw.create_note(
            CreateNoteInput(
                id=record.id,
                name=record.name,
                description=record.description,
                image=record.image,
            )
        )
        return NoteRecord.from_data(data)

    def update(
        self,
        note_id: str,
        *,
        name=_UNSET,
        description=_UNSET,
        image=_UNSET,
    ) -> NoteRecord:
        """
        Push changed fields of a note. Only fields passed are sent; passing
        ``None`` clears the field remotely.
        Raises NoteNotFound if the API has no such note.
        """
        fields = {
            k: v
            for k, v in (("name", name), ("description", description), ("image", image))
            if v is not _UNSET
        }
        LOGGER.debug("Updating note %s fields=%s", note_id, sorted(fields))
        data = self._raw.update_note(UpdateNoteInput(id=note_id, **fields))
        if data is None:
            raise NoteNotFound(f"Note not found: {note_id}")
        return NoteRecord.from_data(data)

    def delete(self, note_id: str) -> NoteRecord:
        """
        Delete a note by id.
        Raises NoteNotFound if the API has no such note.
        """
        data = self._raw.delete_note(note_id)
        if data is None:
            raise NoteNotFound(f"Note not found: {note_id}")
        return NoteRecord.from_data(data)

    @property
    def raw(self) -> GraphQLNotesClient:
        """
        Escape hatch: preconfigured, authenticated GraphQL client for Notes.
        """
        return self._raw
