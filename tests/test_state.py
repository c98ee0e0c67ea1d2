"""Tests for the client-side state, mutation tracking and dispatching."""

import threading
import unittest
from unittest.mock import MagicMock

from cloudnotes.app.dispatch import Dispatcher, InlineExecutor
from cloudnotes.app.mutations import MutationKind, MutationState, MutationTracker
from cloudnotes.app.state import (
    CollectionEvent,
    Note,
    NoteCollection,
    SessionState,
    SyncState,
)
from cloudnotes.services.notes import NoteRecord


class NoteTest(unittest.TestCase):
    def test_new_note_is_pending_with_fresh_id(self):
        first, second = Note.new("A"), Note.new("A")
        self.assertNotEqual(first.id, second.id)
        self.assertEqual(first.sync_state, SyncState.PENDING)

    def test_record_conversion(self):
        note = Note.from_record(NoteRecord("n1", "A", "desc", "k1"))
        self.assertEqual(note.image_name, "k1")
        self.assertTrue(note.has_image)
        self.assertEqual(note.to_record(), NoteRecord("n1", "A", "desc", "k1"))

    def test_identity_equality(self):
        self.assertNotEqual(Note("n1", "A"), Note("n1", "A"))


class SessionStateTest(unittest.TestCase):
    def test_generation_tracks_sign_ins(self):
        session = SessionState()
        generation = session.sign_in()
        self.assertTrue(session.is_current(generation))

        session.sign_out()
        self.assertFalse(session.is_current(generation))

        session.sign_in()
        self.assertFalse(session.is_current(generation))

    def test_unchanged_since_sees_every_transition(self):
        session = SessionState()
        generation = session.generation
        self.assertTrue(session.unchanged_since(generation))

        session.sign_in()
        session.sign_out()
        self.assertFalse(session.unchanged_since(generation))


class NoteCollectionTest(unittest.TestCase):
    def setUp(self):
        self.collection = NoteCollection()
        self.observer = MagicMock()
        self.collection.observe(self.observer)

    def test_append_and_remove_keep_order(self):
        a, b, c = Note("a", "A"), Note("b", "B"), Note("c", "C")
        for note in (a, b, c):
            self.collection.append(note)

        self.assertEqual(self.collection.remove(b), 1)
        self.assertEqual(self.collection.ids(), ["a", "c"])
        self.collection.insert(1, b)
        self.assertEqual(self.collection.ids(), ["a", "b", "c"])

    def test_insert_clamps_index(self):
        note = Note("a", "A")
        self.collection.insert(10, note)
        self.assertIs(self.collection[0], note)

    def test_membership_is_by_identity(self):
        note = Note("a", "A")
        self.collection.append(note)
        self.assertIn(note, self.collection)
        self.assertNotIn(Note("a", "A"), self.collection)
        self.assertIs(self.collection.get("a"), note)

    def test_observers_see_every_change(self):
        note = Note("a", "A")
        self.collection.append(note)
        self.collection.touch(note)
        self.collection.replace_all([note])
        self.collection.remove(note)
        self.collection.clear()

        self.assertEqual(
            [c.args[0] for c in self.observer.call_args_list],
            [
                CollectionEvent.ADDED,
                CollectionEvent.CHANGED,
                CollectionEvent.REPLACED,
                CollectionEvent.REMOVED,
                CollectionEvent.CLEARED,
            ],
        )

    def test_touch_ignores_foreign_notes(self):
        self.collection.touch(Note("a", "A"))
        self.observer.assert_not_called()

    def test_unobserve(self):
        other = MagicMock()
        unobserve = self.collection.observe(other)
        unobserve()
        unobserve()
        self.collection.clear()
        other.assert_not_called()
        self.observer.assert_called_once_with(CollectionEvent.CLEARED, None)


class MutationTrackerTest(unittest.TestCase):
    def test_lifecycle(self):
        tracker = MutationTracker()
        seen = []
        tracker.listen(lambda m: seen.append(m.state))

        ok = tracker.begin(MutationKind.CREATE, "n1")
        bad = tracker.begin(MutationKind.UPDATE, "n1")
        self.assertTrue(tracker.has_pending("n1"))

        tracker.confirm(ok)
        tracker.fail(bad, RuntimeError("boom"))

        self.assertFalse(tracker.has_pending("n1"))
        self.assertTrue(ok.done)
        self.assertEqual(bad.state, MutationState.FAILED)
        self.assertEqual(tracker.failed(), [bad])
        self.assertEqual(
            seen,
            [
                MutationState.PENDING,
                MutationState.PENDING,
                MutationState.CONFIRMED,
                MutationState.FAILED,
            ],
        )

        tracker.clear_failed()
        self.assertEqual(tracker.failed(), [])

    def test_only_recent_failures_are_kept(self):
        tracker = MutationTracker(max_failed=2)
        mutations = [tracker.begin(MutationKind.DELETE, f"n{i}") for i in range(3)]
        for mutation in mutations:
            tracker.fail(mutation, RuntimeError("boom"))

        self.assertEqual([m.note_id for m in tracker.failed()], ["n1", "n2"])


class DispatcherTest(unittest.TestCase):
    def test_owner_thread_runs_inline(self):
        dispatcher = Dispatcher()
        calls = []
        dispatcher.dispatch(calls.append, 1)
        self.assertEqual(calls, [1])
        self.assertFalse(dispatcher.pending())

    def test_other_threads_queue_until_drained(self):
        dispatcher = Dispatcher()
        calls = []
        worker = threading.Thread(target=dispatcher.dispatch, args=(calls.append, 2))
        worker.start()
        worker.join()

        self.assertEqual(calls, [])
        self.assertTrue(dispatcher.pending())
        self.assertEqual(dispatcher.drain(), 1)
        self.assertEqual(calls, [2])

    def test_drain_off_owner_thread_is_an_error(self):
        dispatcher = Dispatcher()
        errors = []

        def _drain():
            try:
                dispatcher.drain()
            except RuntimeError as exc:
                errors.append(exc)

        worker = threading.Thread(target=_drain)
        worker.start()
        worker.join()
        self.assertEqual(len(errors), 1)

    def test_failing_callback_does_not_stop_drain(self):
        dispatcher = Dispatcher()
        calls = []

        def _boom():
            raise RuntimeError("boom")

        for fn, args in ((_boom, ()), (calls.append, (3,))):
            worker = threading.Thread(target=dispatcher.dispatch, args=(fn, *args))
            worker.start()
            worker.join()

        self.assertEqual(dispatcher.drain(), 2)
        self.assertEqual(calls, [3])


class InlineExecutorTest(unittest.TestCase):
    def test_submit_runs_immediately(self):
        future = InlineExecutor().submit(pow, 2, 3)
        self.assertTrue(future.done())
        self.assertEqual(future.result(), 8)

    def test_exceptions_land_on_the_future(self):
        future = InlineExecutor().submit(int, "x")
        self.assertIsInstance(future.exception(), ValueError)


if __name__ == "__main__":
    unittest.main()
