"""Tests for the cloudnotes CLI."""

import json
import os
import tempfile
import unittest
from unittest.mock import MagicMock, patch

from typer.testing import CliRunner

from cloudnotes.app import Note, NoteCollection, SyncState
from cloudnotes.cli.main import app


def _notes_app(*notes):
    notes_app = MagicMock()
    notes_app.__enter__.return_value = notes_app
    notes_app.notes = NoteCollection()
    notes_app.notes.replace_all(list(notes))
    notes_app.wait_idle.return_value = True
    notes_app.mutations.failed.return_value = []
    return notes_app


class CliTest(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()
        self._tmp = tempfile.TemporaryDirectory()
        patcher = patch.dict(os.environ, {"CLOUDNOTES_CONFIG_DIR": self._tmp.name})
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(self._tmp.cleanup)

    def test_status_when_logged_out(self):
        result = self.runner.invoke(app, ["auth", "status"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Not logged in", result.output)

    def test_logout_without_session(self):
        result = self.runner.invoke(app, ["auth", "logout"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("No active session", result.output)

    def test_logout_removes_session_file(self):
        session_file = os.path.join(self._tmp.name, "session.json")
        with open(session_file, "w", encoding="utf-8") as f:
            json.dump({"username": "user@example.com"}, f)

        with patch(
            "cloudnotes.cli.utils.auth.password_exists_in_keyring", return_value=False
        ):
            result = self.runner.invoke(app, ["auth", "logout"])

        self.assertEqual(result.exit_code, 0)
        self.assertFalse(os.path.exists(session_file))
        self.assertIn("Logged out successfully", result.output)

    def test_list_notes(self):
        stale = Note("n2", "Broken", sync_state=SyncState.DESYNCHRONIZED)
        notes_app = _notes_app(Note("n1", "Groceries", "milk"), stale)
        with patch("cloudnotes.cli.utils.auth.get_app", return_value=notes_app):
            result = self.runner.invoke(app, ["notes", "list"])

        self.assertEqual(result.exit_code, 0)
        self.assertIn("Groceries", result.output)
        self.assertIn("out of sync", result.output)

    def test_list_empty(self):
        with patch("cloudnotes.cli.utils.auth.get_app", return_value=_notes_app()):
            result = self.runner.invoke(app, ["notes", "list"])
        self.assertIn("No notes found", result.output)

    def test_add_note(self):
        notes_app = _notes_app()
        notes_app.create_note.return_value = Note("n1", "Groceries")
        with patch("cloudnotes.cli.utils.auth.get_app", return_value=notes_app):
            result = self.runner.invoke(
                app, ["notes", "add", "Groceries", "--description", "milk"]
            )

        self.assertEqual(result.exit_code, 0)
        notes_app.create_note.assert_called_once_with("Groceries", "milk", None)
        notes_app.close.assert_called_once_with()

    def test_add_reports_failed_push(self):
        notes_app = _notes_app()
        notes_app.create_note.return_value = Note("n1", "Groceries")
        failure = MagicMock()
        failure.kind.value = "create"
        failure.note_id = "n1"
        failure.error = "HTTP 500"
        notes_app.mutations.failed.return_value = [failure]
        with patch("cloudnotes.cli.utils.auth.get_app", return_value=notes_app):
            result = self.runner.invoke(app, ["notes", "add", "Groceries"])

        self.assertEqual(result.exit_code, 1)
        self.assertIn("failed", result.output)

    def test_edit_unknown_note(self):
        with patch("cloudnotes.cli.utils.auth.get_app", return_value=_notes_app()):
            result = self.runner.invoke(app, ["notes", "edit", "nope", "--name", "x"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("not found", result.output)

    def test_edit_by_id_prefix(self):
        note = Note("abcdef", "Old")
        notes_app = _notes_app(note)
        with patch("cloudnotes.cli.utils.auth.get_app", return_value=notes_app):
            result = self.runner.invoke(app, ["notes", "edit", "abc", "--name", "New"])

        self.assertEqual(result.exit_code, 0)
        notes_app.edit_note.assert_called_once_with(note, name="New")

    def test_delete_asks_for_confirmation(self):
        notes_app = _notes_app(Note("n1", "Groceries"))
        with patch("cloudnotes.cli.utils.auth.get_app", return_value=notes_app):
            result = self.runner.invoke(app, ["notes", "delete", "n1"], input="n\n")

        self.assertIn("Deletion cancelled", result.output)
        notes_app.delete_note.assert_not_called()

    def test_delete_forced(self):
        note = Note("n1", "Groceries")
        notes_app = _notes_app(note)
        with patch("cloudnotes.cli.utils.auth.get_app", return_value=notes_app):
            result = self.runner.invoke(app, ["notes", "delete", "n1", "--force"])

        self.assertEqual(result.exit_code, 0)
        notes_app.delete_note.assert_called_once_with(note)

    def test_image_saves_loaded_bytes(self):
        note = Note("n1", "Photo", image_name="k1", image=b"png")
        with patch(
            "cloudnotes.cli.utils.auth.get_app", return_value=_notes_app(note)
        ):
            result = self.runner.invoke(
                app, ["notes", "image", "n1", "--directory", self._tmp.name]
            )

        self.assertEqual(result.exit_code, 0)
        with open(os.path.join(self._tmp.name, "k1"), "rb") as f:
            self.assertEqual(f.read(), b"png")


if __name__ == "__main__":
    unittest.main()
