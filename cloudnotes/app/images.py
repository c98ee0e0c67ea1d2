"""
Image relay.

Downloads run on a bounded pool and are keyed by blob name: a note asking
for a key already in flight joins that download. Removing a note cancels
its interest; a queued download nobody waits for any more is cancelled, a
running one finishes and its result is dropped.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set

from cloudnotes.services.storage import StorageService

from .dispatch import Dispatcher
from .state import Note

LOGGER = logging.getLogger(__name__)

Progress = Callable[[int, Optional[int]], None]


@dataclass
class _Fetch:
    future: Future
    waiters: List[Note] = field(default_factory=list)


class ImageRelay:
    def __init__(
        self,
        storage: StorageService,
        dispatcher: Dispatcher,
        *,
        workers: int = 4,
        executor: Optional[Executor] = None,
        is_live: Callable[[Note], bool] = lambda note: True,
        on_attached: Callable[[Note], None] = lambda note: None,
    ):
        self._storage = storage
        self._dispatcher = dispatcher
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="cloudnotes-image"
        )
        self._is_live = is_live
        self._on_attached = on_attached
        self._inflight: Dict[str, _Fetch] = {}
        self._outstanding: Set[Future] = set()
        self._lock = threading.Lock()

    # ----- Downloads -----

    def fetch(self, note: Note) -> Optional[Future]:
        """Download ``note``'s image and attach it. Returns None if it has none."""
        key = note.image_name
        if not key:
            return None
        with self._lock:
            fetch = self._inflight.get(key)
            if fetch is not None:
                if not any(w is note for w in fetch.waiters):
                    fetch.waiters.append(note)
                LOGGER.debug("notes.image.join key=%s id=%s", key, note.id)
                return fetch.future
            future = self._executor.submit(self._storage.download, key)
            fetch = _Fetch(future=future, waiters=[note])
            self._inflight[key] = fetch
            self._outstanding.add(future)
        LOGGER.debug("notes.image.fetch key=%s id=%s", key, note.id)
        future.add_done_callback(lambda f: self._fetched(key, f))
        return future

    def _fetched(self, key: str, future: Future) -> None:
        waiters: List[Note] = []
        with self._lock:
            fetch = self._inflight.get(key)
            if fetch is not None and fetch.future is future:
                del self._inflight[key]
                waiters = list(fetch.waiters)
        try:
            if future.cancelled():
                LOGGER.debug("notes.image.cancelled key=%s", key)
                return
            exc = future.exception()
            if exc is not None:
                LOGGER.warning("notes.image.fetch_failed key=%s err=%s", key, exc)
                return
            if not waiters:
                LOGGER.debug("notes.image.discarded key=%s (no waiters)", key)
                return
            self._dispatcher.dispatch(self._attach, key, waiters, future.result())
        finally:
            self._untrack(future)

    def _attach(self, key: str, waiters: List[Note], data: bytes) -> None:
        for note in waiters:
            # Owner removed or its image changed while the download ran
            if note.image_name != key or not self._is_live(note):
                LOGGER.debug("notes.image.stale key=%s id=%s", key, note.id)
                continue
            note.image = data
            LOGGER.debug("notes.image.attached key=%s id=%s", key, note.id)
            self._on_attached(note)

    def cancel_for(self, note: Note) -> None:
        """Withdraw ``note`` from its download, cancelling it if nobody else waits."""
        key = note.image_name
        if not key:
            return
        with self._lock:
            fetch = self._inflight.get(key)
            if fetch is None:
                return
            fetch.waiters = [w for w in fetch.waiters if w is not note]
            if fetch.waiters:
                return
        # Cancelling runs the done callback, which takes the lock
        cancelled = fetch.future.cancel()
        LOGGER.debug(
            "notes.image.cancel key=%s id=%s queued=%s", key, note.id, cancelled
        )

    def cancel_all(self) -> None:
        with self._lock:
            fetches = list(self._inflight.values())
            for fetch in fetches:
                fetch.waiters = []
        for fetch in fetches:
            fetch.future.cancel()
        if fetches:
            LOGGER.debug("notes.image.cancel_all count=%d", len(fetches))

    def inflight_keys(self) -> List[str]:
        with self._lock:
            return list(self._inflight)

    # ----- Uploads / deletes -----

    def upload(
        self,
        key: str,
        data: bytes,
        *,
        progress: Optional[Progress] = None,
        on_done: Optional[Callable[[Future], None]] = None,
    ) -> Future:
        LOGGER.debug("notes.image.upload key=%s bytes=%d", key, len(data))
        future = self._executor.submit(
            self._storage.upload,
            key,
            data,
            content_type="image/png",
            progress=progress,
        )
        return self._track(future, on_done)

    def remove(self, key: str) -> Future:
        LOGGER.debug("notes.image.remove key=%s", key)

        def _log_failure(f: Future) -> None:
            if not f.cancelled() and f.exception() is not None:
                LOGGER.warning(
                    "notes.image.remove_failed key=%s err=%s", key, f.exception()
                )

        return self._track(
            self._executor.submit(self._storage.remove, key), _log_failure
        )

    def _track(
        self, future: Future, on_done: Optional[Callable[[Future], None]] = None
    ) -> Future:
        with self._lock:
            self._outstanding.add(future)
        if on_done is not None:
            future.add_done_callback(on_done)
        future.add_done_callback(self._untrack)
        return future

    def _untrack(self, future: Future) -> None:
        with self._lock:
            self._outstanding.discard(future)

    def outstanding(self) -> List[Future]:
        with self._lock:
            return list(self._outstanding)

    def shutdown(self, wait: bool = True) -> None:
        self.cancel_all()
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
