"""
The rendering context.

Shared application state is only mutated through a Dispatcher. Callbacks
dispatched from the thread that owns the dispatcher run inline; callbacks from
any other thread (network completions) are queued and run on the next
``drain()`` by the owner.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Executor, Future
from typing import Callable, Optional

LOGGER = logging.getLogger(__name__)


class Dispatcher:
    def __init__(self) -> None:
        self._owner = threading.get_ident()
        self._queue: "queue.SimpleQueue[tuple]" = queue.SimpleQueue()

    @property
    def on_owner_thread(self) -> bool:
        return threading.get_ident() == self._owner

    def dispatch(self, fn: Callable, *args, **kwargs) -> None:
        if self.on_owner_thread:
            fn(*args, **kwargs)
        else:
            self._queue.put((fn, args, kwargs))

    def pending(self) -> bool:
        return not self._queue.empty()

    def drain(self, timeout: Optional[float] = None) -> int:
        """
        Run every queued callback on the calling (owner) thread.

        With a timeout, wait up to that long for the first callback to arrive.
        Returns the number of callbacks run.
        """
        if not self.on_owner_thread:
            raise RuntimeError("Dispatcher.drain() must run on the owner thread")
        ran = 0
        block = timeout is not None
        while True:
            try:
                fn, args, kwargs = self._queue.get(block=block, timeout=timeout)
            except queue.Empty:
                return ran
            block = False
            try:
                fn(*args, **kwargs)
            except Exception:
                LOGGER.exception("Dispatched callback %r failed", fn)
            ran += 1


class InlineExecutor(Executor):
    """Executor that runs each submitted call immediately in the caller's thread."""

    def submit(self, fn, /, *args, **kwargs) -> Future:
        future: Future = Future()
        if not future.set_running_or_notify_cancel():
            return future
        try:
            result = fn(*args, **kwargs)
        except BaseException as exc:
            future.set_exception(exc)
        else:
            future.set_result(result)
        return future
