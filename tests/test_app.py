"""Tests for NotesApp wiring of auth events to the note collection."""

import threading
import time
import unittest
from unittest.mock import MagicMock

from cloudnotes.app import InlineExecutor, NotesApp, SyncState
from cloudnotes.config import ClientConfig
from cloudnotes.services.auth import AuthEvent, AuthHub
from cloudnotes.services.http import RemoteAuthError
from cloudnotes.services.notes import NoteNotFound, NoteRecord


def _api(**config):
    api = MagicMock()
    api.config = ClientConfig(**config)
    hub = AuthHub()
    api.auth.listen.side_effect = hub.listen
    api.auth.fetch_auth_session.return_value = False
    api.notes.list.return_value = [
        NoteRecord("a", "First", image="k1"),
        NoteRecord("b", "Second"),
    ]
    api.storage.download.return_value = b"png"
    return api, hub


class NotesAppTest(unittest.TestCase):
    def setUp(self):
        self.api, self.hub = _api()
        self.app = NotesApp(
            self.api, executor=InlineExecutor(), image_executor=InlineExecutor()
        )
        self.addCleanup(self.app.close)

    def test_sign_in_event_loads_collection(self):
        self.hub.emit(AuthEvent.SIGNED_IN)

        self.assertTrue(self.app.is_signed_in)
        self.assertEqual(self.app.notes.ids(), ["a", "b"])
        self.assertEqual(self.app.notes.get("a").image, b"png")
        self.api.storage.download.assert_called_once_with("k1")

    def test_sign_out_event_clears_collection(self):
        self.hub.emit(AuthEvent.SIGNED_IN)
        self.hub.emit(AuthEvent.SIGNED_OUT)

        self.assertFalse(self.app.is_signed_in)
        self.assertEqual(len(self.app.notes), 0)
        self.api.notes.list.assert_called_once_with()

    def test_session_expiry_clears_collection(self):
        self.hub.emit(AuthEvent.SIGNED_IN)
        self.hub.emit(AuthEvent.SESSION_EXPIRED)
        self.assertFalse(self.app.is_signed_in)
        self.assertEqual(len(self.app.notes), 0)

    def test_events_from_other_threads_wait_for_drain(self):
        worker = threading.Thread(target=self.hub.emit, args=(AuthEvent.SIGNED_IN,))
        worker.start()
        worker.join()

        self.assertFalse(self.app.is_signed_in)
        self.app.dispatcher.drain()
        self.assertTrue(self.app.is_signed_in)
        self.assertEqual(len(self.app.notes), 2)

    def test_start_restores_session(self):
        self.api.auth.fetch_auth_session.return_value = True
        self.app.start()
        self.assertEqual(len(self.app.notes), 2)

    def test_start_without_session(self):
        self.app.start()
        self.assertFalse(self.app.is_signed_in)
        self.api.notes.list.assert_not_called()

    def test_auth_failure_on_reload_expires_session(self):
        self.api.notes.list.side_effect = RemoteAuthError("HTTP 401: unauthorized")
        self.hub.emit(AuthEvent.SIGNED_IN)
        self.api.auth.expire.assert_called_once_with()

    def test_crud_round_trip(self):
        self.hub.emit(AuthEvent.SIGNED_IN)

        note = self.app.create_note("Third", "desc")
        self.assertEqual(self.app.notes.ids()[-1], note.id)
        self.assertEqual(note.sync_state, SyncState.SYNCED)

        self.app.edit_note(note, name="Renamed")
        self.api.notes.update.assert_called_once_with(note.id, name="Renamed")

        self.app.delete_note(note)
        self.api.notes.delete.assert_called_once_with(note.id)
        self.assertNotIn(note, self.app.notes)

    def test_sign_in_and_out_delegate_to_provider(self):
        self.app.sign_in("user@example.com", "secret")
        self.api.auth.sign_in.assert_called_once_with("user@example.com", "secret")
        self.app.sign_out()
        self.api.auth.sign_out.assert_called_once_with()


class ThreadedNotesAppTest(unittest.TestCase):
    def test_wait_idle_applies_background_results(self):
        api, hub = _api(api_workers=2, image_workers=2)
        with NotesApp(api) as app:
            hub.emit(AuthEvent.SIGNED_IN)
            self.assertTrue(app.wait_idle(timeout=5))

            self.assertEqual(app.notes.ids(), ["a", "b"])
            self.assertEqual(app.notes.get("a").image, b"png")

            note = app.create_note("Third")
            self.assertTrue(app.wait_idle(timeout=5))
            self.assertEqual(note.sync_state, SyncState.SYNCED)

    def test_delete_right_after_create_reaches_api_in_order(self):
        api, _ = _api(api_workers=4)
        remote = set()

        def create(record):
            time.sleep(0.2)
            remote.add(record.id)
            return record

        def delete(note_id):
            if note_id not in remote:
                raise NoteNotFound(note_id)
            remote.discard(note_id)

        api.notes.create.side_effect = create
        api.notes.delete.side_effect = delete
        with NotesApp(api) as app:
            note = app.create_note("X")
            app.delete_note(note)
            self.assertTrue(app.wait_idle(timeout=5))

            self.assertEqual(remote, set())
            self.assertEqual(len(app.notes), 0)
            self.assertEqual(app.mutations.failed(), [])


if __name__ == "__main__":
    unittest.main()
