"""
Tracking of optimistic mutations.

Each local change pushed to the API becomes a PendingMutation that moves
``pending -> confirmed`` or ``pending -> failed``. What happens to the local
change on failure is the FailurePolicy:

  revert  undo the local change
  mark    keep the local change and flag the note desynchronized
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Deque, Dict, List, Optional

from .state import new_id

LOGGER = logging.getLogger(__name__)


class MutationKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    UPLOAD_IMAGE = "upload_image"


class MutationState(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class FailurePolicy(str, Enum):
    REVERT = "revert"
    MARK = "mark"


@dataclass
class PendingMutation:
    kind: MutationKind
    note_id: str
    undo: Optional[Callable[[], None]] = field(default=None, repr=False)
    generation: int = 0
    id: str = field(default_factory=new_id)
    state: MutationState = MutationState.PENDING
    error: Optional[BaseException] = None
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None

    @property
    def done(self) -> bool:
        return self.state is not MutationState.PENDING


Listener = Callable[[PendingMutation], None]


class MutationTracker:
    """
    Registry of in-flight and failed mutations.

    Only the most recent ``max_failed`` failures are kept.
    """

    def __init__(self, max_failed: int = 100) -> None:
        self._pending: Dict[str, PendingMutation] = {}
        self._failed: Deque[PendingMutation] = deque(maxlen=max_failed)
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    def listen(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, mutation: PendingMutation) -> None:
        for listener in list(self._listeners):
            listener(mutation)

    def begin(
        self,
        kind: MutationKind,
        note_id: str,
        undo: Optional[Callable[[], None]] = None,
        generation: int = 0,
    ) -> PendingMutation:
        mutation = PendingMutation(
            kind=kind, note_id=note_id, undo=undo, generation=generation
        )
        with self._lock:
            self._pending[mutation.id] = mutation
        LOGGER.debug("notes.mutation.begin %s id=%s", kind.value, note_id)
        self._notify(mutation)
        return mutation

    def confirm(self, mutation: PendingMutation) -> None:
        with self._lock:
            self._pending.pop(mutation.id, None)
        mutation.state = MutationState.CONFIRMED
        mutation.finished_at = time.time()
        LOGGER.debug(
            "notes.mutation.confirmed %s id=%s", mutation.kind.value, mutation.note_id
        )
        self._notify(mutation)

    def fail(self, mutation: PendingMutation, error: BaseException) -> None:
        with self._lock:
            self._pending.pop(mutation.id, None)
            self._failed.append(mutation)
        mutation.state = MutationState.FAILED
        mutation.error = error
        mutation.finished_at = time.time()
        LOGGER.warning(
            "notes.mutation.failed %s id=%s err=%s",
            mutation.kind.value,
            mutation.note_id,
            error,
        )
        self._notify(mutation)

    def pending(self) -> List[PendingMutation]:
        with self._lock:
            return list(self._pending.values())

    def failed(self) -> List[PendingMutation]:
        with self._lock:
            return list(self._failed)

    def has_pending(self, note_id: str) -> bool:
        with self._lock:
            return any(m.note_id == note_id for m in self._pending.values())

    def clear_failed(self) -> None:
        with self._lock:
            self._failed.clear()
