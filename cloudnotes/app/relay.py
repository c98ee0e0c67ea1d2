"""
Note relay: session-gated reloads and optimistic create/edit/delete.

Every operation changes the local collection first and then fires the remote
call on the executor. Completions are handed to the dispatcher before they
touch shared state.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import CancelledError, Executor, Future
from typing import Callable, Dict, List, Optional, Set

from cloudnotes.services.http import RemoteAuthError
from cloudnotes.services.notes import NotesService
from cloudnotes.services.notes.models import NoteRecord

from .dispatch import Dispatcher
from .images import ImageRelay
from .mutations import FailurePolicy, MutationKind, MutationTracker, PendingMutation
from .state import Note, NoteCollection, SessionState, SyncState, new_id

LOGGER = logging.getLogger(__name__)

_UNSET = object()


class NoteRelay:
    def __init__(
        self,
        notes: NotesService,
        collection: NoteCollection,
        session: SessionState,
        tracker: MutationTracker,
        images: ImageRelay,
        dispatcher: Dispatcher,
        executor: Executor,
        *,
        policy: FailurePolicy = FailurePolicy.REVERT,
        refresh_after_edit: bool = False,
        delete_images_with_notes: bool = True,
        on_auth_failure: Callable[[], None] = lambda: None,
    ):
        self._notes = notes
        self._collection = collection
        self._session = session
        self._tracker = tracker
        self._images = images
        self._dispatcher = dispatcher
        self._executor = executor
        self.policy = FailurePolicy(policy)
        self.refresh_after_edit = refresh_after_edit
        self.delete_images_with_notes = delete_images_with_notes
        self._on_auth_failure = on_auth_failure
        self._outstanding: Set[Future] = set()
        self._tails: Dict[str, Future] = {}
        # Notes whose create was reverted; a later failed delete must not restore them
        self._discarded: Set[str] = set()
        self._lock = threading.Lock()

    # ------------------------------ Futures ----------------------------------

    def _submit(
        self, on_done: Callable[[Future], None], fn, *args, **kwargs
    ) -> Future:
        """Run ``fn`` on the executor; ``on_done`` gets the future on the dispatcher."""
        future = self._executor.submit(fn, *args, **kwargs)
        self._track(future, on_done)
        return future

    def _submit_for(
        self, note_id: str, on_done: Callable[[Future], None], fn, *args, **kwargs
    ) -> Future:
        """
        Like ``_submit``, but ``fn`` only starts once every call submitted
        earlier for ``note_id`` has finished, so one note's remote operations
        reach the API in the order they were made.
        """
        future: Future = Future()
        with self._lock:
            previous = self._tails.get(note_id)
            self._tails[note_id] = future
        self._track(future, on_done)
        future.add_done_callback(lambda f: self._release_tail(note_id, f))

        def start(_previous: Optional[Future] = None) -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                inner = self._executor.submit(fn, *args, **kwargs)
            except RuntimeError as exc:
                # Executor already shut down
                future.set_exception(exc)
                return
            inner.add_done_callback(lambda f: _copy_outcome(f, future))

        if previous is None:
            start()
        else:
            previous.add_done_callback(start)
        return future

    def _track(self, future: Future, on_done: Callable[[Future], None]) -> None:
        with self._lock:
            self._outstanding.add(future)
        # Dispatch before untracking so wait_idle never sees a gap
        future.add_done_callback(lambda f: self._dispatcher.dispatch(on_done, f))
        future.add_done_callback(self._untrack)

    def _release_tail(self, note_id: str, future: Future) -> None:
        with self._lock:
            if self._tails.get(note_id) is future:
                del self._tails[note_id]

    def _untrack(self, future: Future) -> None:
        with self._lock:
            self._outstanding.discard(future)

    def outstanding(self) -> List[Future]:
        with self._lock:
            return list(self._outstanding)

    def _begin(
        self,
        kind: MutationKind,
        note: Note,
        undo: Optional[Callable[[], None]] = None,
    ) -> PendingMutation:
        return self._tracker.begin(
            kind, note.id, undo=undo, generation=self._session.generation
        )

    # ------------------------------ Reload -----------------------------------

    def reload(self) -> Optional[Future]:
        """
        Fetch the full collection and replace the local one, in API order.
        Results that arrive after the session they were requested under has
        ended are dropped.
        """
        if not self._session.signed_in:
            LOGGER.debug("notes.relay.reload skipped: signed out")
            return None
        generation = self._session.generation
        LOGGER.info("notes.relay.reload generation=%d", generation)
        future = self._submit(
            lambda f: self._apply_reload(generation, f), self._notes.list
        )
        return future

    def _apply_reload(self, generation: int, future: Future) -> None:
        if not self._session.is_current(generation):
            LOGGER.info(
                "notes.relay.reload_stale generation=%d current=%d",
                generation,
                self._session.generation,
            )
            return
        exc = future.exception()
        if exc is not None:
            LOGGER.error("notes.relay.reload_failed err=%s", exc)
            if isinstance(exc, RemoteAuthError):
                self._on_auth_failure()
            return
        records: List[NoteRecord] = future.result()
        self._images.cancel_all()
        notes = [Note.from_record(r) for r in records]
        self._collection.replace_all(notes)
        LOGGER.info("notes.relay.reloaded count=%d", len(notes))
        for note in notes:
            self._images.fetch(note)

    def clear(self) -> None:
        """Drop every local note; no remote call."""
        self._images.cancel_all()
        self._collection.clear()
        self._discarded.clear()
        LOGGER.info("notes.relay.cleared")

    # ------------------------------ Create -----------------------------------

    def create(
        self,
        name: str,
        description: Optional[str] = None,
        image: Optional[bytes] = None,
    ) -> Note:
        """Append a new note immediately and persist it in the background."""
        note = Note.new(name, description)
        if image is not None:
            note.image_name = new_id()
            note.image = image
        self._collection.append(note)
        LOGGER.info("notes.relay.create id=%s", note.id)

        mutation = self._begin(
            MutationKind.CREATE, note, undo=lambda: self._undo_create(note)
        )
        if image is not None:
            self._upload_image(note, image)
        self._submit_for(
            note.id,
            lambda f: self._finish(mutation, note, f),
            self._notes.create,
            note.to_record(),
        )
        return note

    def _upload_image(self, note: Note, data: bytes) -> None:
        key = note.image_name
        # The note record exists either way; a lost blob only desyncs the note
        mutation = self._begin(MutationKind.UPLOAD_IMAGE, note)
        self._images.upload(
            key,
            data,
            on_done=lambda f: self._dispatcher.dispatch(
                self._finish, mutation, note, f, policy=FailurePolicy.MARK
            ),
        )

    def _undo_create(self, note: Note) -> None:
        self._discarded.add(note.id)
        if note in self._collection:
            self._images.cancel_for(note)
            self._collection.remove(note)
        if note.image_name and self.delete_images_with_notes:
            self._images.remove(note.image_name)

    # ------------------------------ Edit -------------------------------------

    def edit(self, note: Note, *, name=_UNSET, description=_UNSET) -> Note:
        """Change ``note`` in place and push the changed fields."""
        changes = {}
        if name is not _UNSET and name != note.name:
            changes["name"] = name
        if description is not _UNSET and description != note.description:
            changes["description"] = description
        if not changes:
            return note

        previous = {k: getattr(note, k) for k in changes}
        for k, v in changes.items():
            setattr(note, k, v)
        note.sync_state = SyncState.PENDING
        self._collection.touch(note)
        LOGGER.info("notes.relay.edit id=%s fields=%s", note.id, sorted(changes))

        mutation = self._begin(
            MutationKind.UPDATE, note, undo=lambda: self._undo_edit(note, previous)
        )
        self._submit_for(
            note.id,
            lambda f: self._finish_edit(mutation, note, f),
            self._notes.update,
            note.id,
            **changes,
        )
        return note

    def _finish_edit(self, mutation: PendingMutation, note: Note, future: Future):
        self._finish(mutation, note, future)
        if self.refresh_after_edit and future.exception() is None:
            self.reload()

    def _undo_edit(self, note: Note, previous: dict) -> None:
        for k, v in previous.items():
            setattr(note, k, v)
        self._collection.touch(note)

    # ------------------------------ Delete -----------------------------------

    def delete(self, note: Note) -> Future:
        """Remove ``note`` immediately and delete it remotely."""
        index = self._collection.remove(note)
        self._images.cancel_for(note)
        LOGGER.info("notes.relay.delete id=%s", note.id)

        mutation = self._begin(
            MutationKind.DELETE, note, undo=lambda: self._undo_delete(note, index)
        )
        future = self._submit_for(
            note.id,
            lambda f: self._finish_delete(mutation, note, f),
            self._notes.delete,
            note.id,
        )
        return future

    def _finish_delete(self, mutation: PendingMutation, note: Note, future: Future):
        self._finish(mutation, note, future)
        if (
            future.exception() is None
            and note.image_name
            and self.delete_images_with_notes
        ):
            self._images.remove(note.image_name)

    def _undo_delete(self, note: Note, index: int) -> None:
        if note.id not in self._discarded and note not in self._collection:
            self._collection.insert(index, note)
            if note.image is None:
                self._images.fetch(note)

    # ------------------------------ Completion -------------------------------

    def _finish(
        self,
        mutation: PendingMutation,
        note: Note,
        future: Future,
        *,
        policy: Optional[FailurePolicy] = None,
    ) -> None:
        exc = future.exception()
        if exc is None:
            self._tracker.confirm(mutation)
            if note.sync_state is SyncState.PENDING and not self._tracker.has_pending(
                note.id
            ):
                note.sync_state = SyncState.SYNCED
                self._collection.touch(note)
            return

        self._tracker.fail(mutation, exc)
        if not self._session.unchanged_since(mutation.generation):
            # The collection it changed has since been cleared or reloaded
            LOGGER.warning(
                "notes.relay.%s_failed_after_session_change id=%s err=%s",
                mutation.kind.value,
                note.id,
                exc,
            )
            return
        policy = policy or self.policy
        LOGGER.error(
            "notes.relay.%s_failed id=%s policy=%s err=%s",
            mutation.kind.value,
            note.id,
            policy.value,
            exc,
        )
        if policy is FailurePolicy.REVERT and mutation.undo is not None:
            mutation.undo()
            note.sync_state = SyncState.SYNCED
        else:
            note.sync_state = SyncState.DESYNCHRONIZED
        self._collection.touch(note)
        if isinstance(exc, RemoteAuthError):
            self._on_auth_failure()


def _copy_outcome(source: Future, target: Future) -> None:
    if source.cancelled():
        target.set_exception(CancelledError())
    elif source.exception() is not None:
        target.set_exception(source.exception())
    else:
        target.set_result(source.result())
