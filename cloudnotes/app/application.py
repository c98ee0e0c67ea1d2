"""
NotesApp: the client-side application state, constructed once and injected.

Wires the session flag and the note collection to the identity provider's
event stream:

  signedIn        -> session on, full reload
  signedOut       -> session off, collection cleared (no remote call)
  sessionExpired  -> same as signedOut
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import FIRST_COMPLETED, Executor, ThreadPoolExecutor, wait
from typing import Optional

from cloudnotes.base import CloudNotesService
from cloudnotes.services.auth import AuthEvent

from .dispatch import Dispatcher
from .images import ImageRelay
from .mutations import FailurePolicy, MutationTracker
from .relay import NoteRelay
from .state import Note, NoteCollection, SessionState

LOGGER = logging.getLogger(__name__)


class NotesApp:
    def __init__(
        self,
        api: CloudNotesService,
        *,
        dispatcher: Optional[Dispatcher] = None,
        executor: Optional[Executor] = None,
        image_executor: Optional[Executor] = None,
    ):
        self.api = api
        config = api.config
        self.dispatcher = dispatcher or Dispatcher()
        self.session = SessionState()
        self.notes = NoteCollection()
        self.mutations = MutationTracker()

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=config.api_workers, thread_name_prefix="cloudnotes-api"
        )
        self.images = ImageRelay(
            api.storage,
            self.dispatcher,
            workers=config.image_workers,
            executor=image_executor,
            is_live=lambda note: note in self.notes,
            on_attached=self.notes.touch,
        )
        self.relay = NoteRelay(
            api.notes,
            self.notes,
            self.session,
            self.mutations,
            self.images,
            self.dispatcher,
            self._executor,
            policy=FailurePolicy(config.failure_policy),
            refresh_after_edit=config.refresh_after_edit,
            delete_images_with_notes=config.delete_images_with_notes,
            on_auth_failure=api.auth.expire,
        )
        self._unsubscribe = api.auth.listen(self._on_auth_event)

    # ------------------------------ Session ----------------------------------

    def start(self) -> None:
        """Pick up a session restored from disk, if any."""
        if self.api.auth.fetch_auth_session():
            LOGGER.info("Restored session for %s", self.api.auth.username)
            self._apply_auth_event(AuthEvent.SIGNED_IN)

    @property
    def is_signed_in(self) -> bool:
        return self.session.signed_in

    def _on_auth_event(self, event: AuthEvent) -> None:
        self.dispatcher.dispatch(self._apply_auth_event, event)

    def _apply_auth_event(self, event: AuthEvent) -> None:
        LOGGER.info("notes.app.auth_event %s", event.value)
        if event is AuthEvent.SIGNED_IN:
            self.session.sign_in()
            self.relay.reload()
        else:
            self.session.sign_out()
            self.relay.clear()

    def sign_in(self, username: str, password: str) -> None:
        self.api.auth.sign_in(username, password)

    def sign_out(self) -> None:
        self.api.auth.sign_out()

    # ------------------------------ Notes ------------------------------------

    def create_note(
        self,
        name: str,
        description: Optional[str] = None,
        image: Optional[bytes] = None,
    ) -> Note:
        return self.relay.create(name, description, image)

    def edit_note(self, note: Note, **changes) -> Note:
        return self.relay.edit(note, **changes)

    def delete_note(self, note: Note) -> None:
        self.relay.delete(note)

    def reload(self) -> None:
        self.relay.reload()

    # ------------------------------ Lifecycle --------------------------------

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every remote call has completed and its result has been
        applied. Must run on the dispatcher's owner thread. Returns False on
        timeout.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            self.dispatcher.drain()
            outstanding = self.relay.outstanding() + self.images.outstanding()
            if not outstanding and not self.dispatcher.pending():
                return True
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                return False
            if outstanding:
                wait(outstanding, timeout=remaining, return_when=FIRST_COMPLETED)
            else:
                self.dispatcher.drain(timeout=remaining)

    def close(self) -> None:
        self._unsubscribe()
        self.images.shutdown(wait=False)
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    def __enter__(self) -> "NotesApp":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
