"""Tests for the identity provider client."""

import json
import os
import tempfile
import time
import unittest
from unittest.mock import MagicMock

import requests

from cloudnotes.config import ClientConfig
from cloudnotes.exceptions import (
    CloudNotesAPIResponseException,
    CloudNotesFailedLoginException,
    CloudNotesNoSessionException,
    CloudNotesServiceUnavailable,
)
from cloudnotes.services.auth import AuthEvent, AuthService


def _response(status_code=200, body=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.headers = {}
    resp.json.return_value = body if body is not None else {}
    resp.text = ""
    return resp


class AuthServiceTest(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.session_dir = self._tmp.name
        self.session = MagicMock()
        self.config = ClientConfig(retry_min_wait=0, retry_max_wait=0)
        self.events = []
        self.auth = self._service()

    def tearDown(self):
        self._tmp.cleanup()

    def _service(self, username=None):
        service = AuthService(
            "https://auth.example.com",
            self.session,
            config=self.config,
            session_dir=self.session_dir,
            username=username,
        )
        service.listen(self.events.append)
        return service

    def _sign_in(self, **body):
        self.session.request.return_value = _response(
            body={"accessToken": "access-1", "expiresIn": 3600, **body}
        )
        return self.auth.sign_in("user@example.com", "secret")

    def test_sign_in_publishes_and_persists(self):
        tokens = self._sign_in()

        self.assertEqual(tokens.access_token, "access-1")
        self.assertTrue(self.auth.is_signed_in)
        self.assertEqual(self.auth.access_token(), "access-1")
        self.assertEqual(self.events, [AuthEvent.SIGNED_IN])

        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ("POST", "https://auth.example.com/signin"))
        self.assertEqual(
            kwargs["json"], {"username": "user@example.com", "password": "secret"}
        )

        path = self.auth.session_path("user@example.com")
        self.assertTrue(os.path.exists(path))
        self.assertEqual(os.stat(path).st_mode & 0o777, 0o600)

    def test_session_survives_restart(self):
        self._sign_in()
        restored = self._service(username="user@example.com")
        self.assertTrue(restored.fetch_auth_session())
        self.assertEqual(restored.username, "user@example.com")
        self.assertEqual(restored.access_token(), "access-1")

    def test_rejected_credentials(self):
        self.session.request.return_value = _response(401)
        with self.assertRaises(CloudNotesFailedLoginException):
            self.auth.sign_in("user@example.com", "wrong")
        self.assertFalse(self.auth.is_signed_in)
        self.assertEqual(self.events, [])

    def test_malformed_sign_in_response(self):
        self.session.request.return_value = _response(body={"unexpected": True})
        with self.assertRaises(CloudNotesAPIResponseException):
            self.auth.sign_in("user@example.com", "secret")

    def test_unreachable_provider(self):
        self.session.request.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(CloudNotesServiceUnavailable):
            self.auth.sign_in("user@example.com", "secret")

    def test_sign_out_publishes_and_forgets(self):
        self._sign_in()
        path = self.auth.session_path("user@example.com")
        self.session.request.return_value = _response()

        self.auth.sign_out()

        self.assertFalse(self.auth.is_signed_in)
        self.assertIsNone(self.auth.access_token())
        self.assertFalse(os.path.exists(path))
        self.assertEqual(self.events, [AuthEvent.SIGNED_IN, AuthEvent.SIGNED_OUT])

    def test_sign_out_survives_remote_failure(self):
        self._sign_in()
        self.session.request.return_value = _response(400)
        self.auth.sign_out()
        self.assertFalse(self.auth.is_signed_in)
        self.assertEqual(self.events[-1], AuthEvent.SIGNED_OUT)

    def test_sign_out_without_session(self):
        with self.assertRaises(CloudNotesNoSessionException):
            self.auth.sign_out()

    def test_expired_session_is_dropped(self):
        path = os.path.join(self.session_dir, "user@example.com.session")
        with open(path, "w", encoding="utf-8") as f:
            json.dump(
                {
                    "username": "user@example.com",
                    "accessToken": "stale",
                    "expiresAt": time.time() - 10,
                },
                f,
            )
        restored = self._service(username="user@example.com")

        self.assertFalse(restored.fetch_auth_session())
        self.assertEqual(self.events, [AuthEvent.SESSION_EXPIRED])
        self.assertFalse(os.path.exists(path))

    def test_unreadable_session_file_is_ignored(self):
        path = os.path.join(self.session_dir, "user@example.com.session")
        with open(path, "w", encoding="utf-8") as f:
            f.write("not json")
        restored = self._service(username="user@example.com")
        self.assertFalse(restored.fetch_auth_session())

    def test_expire_publishes_once(self):
        self._sign_in()
        self.auth.expire()
        self.auth.expire()
        self.assertEqual(
            self.events, [AuthEvent.SIGNED_IN, AuthEvent.SESSION_EXPIRED]
        )

    def test_failing_listener_does_not_stop_others(self):
        broken = MagicMock(side_effect=RuntimeError("listener bug"))
        self.auth.listen(broken)
        self._sign_in()
        broken.assert_called_once_with(AuthEvent.SIGNED_IN)
        self.assertEqual(self.events, [AuthEvent.SIGNED_IN])


if __name__ == "__main__":
    unittest.main()
