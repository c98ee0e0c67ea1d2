"""
Identity provider client.

Public API:
  - AuthService.sign_in(username, password) -> AuthTokens
  - AuthService.sign_out()
  - AuthService.fetch_auth_session() -> bool
  - AuthService.listen(callback) -> unsubscribe callable
  - AuthService.access_token() -> Optional[str] (token provider for other services)

Tokens are kept in memory and, when a session directory is configured, in
``{session_dir}/{username}.session`` so the CLI survives restarts.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from typing import Callable, Dict, List, Optional

import requests
from pydantic import ValidationError

from cloudnotes.exceptions import (
    CloudNotesAPIResponseException,
    CloudNotesFailedLoginException,
    CloudNotesNoSessionException,
    CloudNotesServiceUnavailable,
)
from cloudnotes.services.base import BaseService
from cloudnotes.services.http import (
    HttpClient,
    RemoteApiError,
    RemoteAuthError,
    RemoteError,
    RemoteRateLimited,
)

from .models import AuthEvent, AuthTokens, SignInRequest, SignInResponse

LOGGER = logging.getLogger(__name__)

Listener = Callable[[AuthEvent], None]


class AuthHub:
    """Fan-out of auth events to subscribed listeners."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    def listen(self, callback: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def emit(self, event: AuthEvent) -> None:
        LOGGER.debug("auth.hub.emit %s", event.value)
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                LOGGER.exception("Auth listener failed on %s", event.value)


class AuthService(BaseService):
    """Sign-in, sign-out and session state against the identity provider."""

    def __init__(
        self,
        service_root: str,
        session,
        params: Optional[Dict[str, object]] = None,
        *,
        config=None,
        session_dir: Optional[str] = None,
        username: Optional[str] = None,
    ):
        super().__init__(
            service_root=service_root, session=session, params=params, config=config
        )
        self._http = HttpClient(
            self.service_root,
            session,
            self.params,
            token_provider=self.access_token,
            timeout=self.config.request_timeout,
            retry_attempts=self.config.retry_attempts,
            retry_min_wait=self.config.retry_min_wait,
            retry_max_wait=self.config.retry_max_wait,
        )
        self._session_dir = session_dir
        self._tokens: Optional[AuthTokens] = None
        self._lock = threading.RLock()
        self.hub = AuthHub()
        if username:
            self._tokens = self._load_tokens(username)

    # ------------------------------ Session file -----------------------------

    def session_path(self, username: str) -> Optional[str]:
        if not self._session_dir:
            return None
        return os.path.join(self._session_dir, f"{username}.session")

    def _load_tokens(self, username: str) -> Optional[AuthTokens]:
        path = self.session_path(username)
        if not path or not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                tokens = AuthTokens.model_validate(json.load(f))
            LOGGER.debug("Loaded session for %s from %s", username, path)
            return tokens
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            LOGGER.warning("Ignoring unreadable session file %s: %s", path, exc)
            return None

    def _save_tokens(self, tokens: AuthTokens) -> None:
        path = self.session_path(tokens.username)
        if not path:
            return
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(tokens.model_dump(by_alias=True), f)
        os.chmod(path, 0o600)

    def _remove_tokens(self, username: str) -> None:
        path = self.session_path(username)
        if path and os.path.exists(path):
            os.remove(path)

    # ------------------------------ Public API -------------------------------

    @property
    def username(self) -> Optional[str]:
        with self._lock:
            return self._tokens.username if self._tokens else None

    @property
    def is_signed_in(self) -> bool:
        with self._lock:
            return self._tokens is not None and not self._tokens.is_expired()

    def access_token(self) -> Optional[str]:
        with self._lock:
            return self._tokens.access_token if self._tokens else None

    def listen(self, callback: Listener) -> Callable[[], None]:
        """Subscribe to sign-in, sign-out and session-expiry events."""
        return self.hub.listen(callback)

    def sign_in(self, username: str, password: str) -> AuthTokens:
        """Authenticate and publish ``signedIn``."""
        LOGGER.info("Signing in as %s", username)
        payload = SignInRequest(username=username, password=password).model_dump()
        try:
            data = self._http.post_json("/signin", payload)
        except RemoteAuthError as exc:
            LOGGER.error("Sign-in rejected for %s", username)
            raise CloudNotesFailedLoginException(
                f"Invalid username or password for {username}"
            ) from exc
        except RemoteApiError as exc:
            raise CloudNotesAPIResponseException(str(exc), exc.status_code) from exc
        except RemoteRateLimited as exc:
            raise CloudNotesAPIResponseException(str(exc), 429) from exc
        except requests.RequestException as exc:
            raise CloudNotesServiceUnavailable(
                f"Identity provider unreachable: {exc}"
            ) from exc
        try:
            resp = SignInResponse.model_validate(data)
        except ValidationError as exc:
            raise CloudNotesAPIResponseException("Invalid sign-in response") from exc

        tokens = AuthTokens.from_response(username, resp)
        with self._lock:
            self._tokens = tokens
        self._save_tokens(tokens)
        LOGGER.info("Signed in as %s", tokens.username)
        self.hub.emit(AuthEvent.SIGNED_IN)
        return tokens

    def sign_out(self, *, remote: bool = True) -> None:
        """Forget the tokens and publish ``signedOut``."""
        with self._lock:
            tokens = self._tokens
        if tokens is None:
            raise CloudNotesNoSessionException("Not signed in")
        if remote:
            try:
                self._http.request("POST", "/signout")
            except (RemoteError, requests.RequestException) as exc:
                # The local session ends regardless of what the provider says
                LOGGER.warning("Remote sign-out failed: %s", exc)
        with self._lock:
            self._tokens = None
        self._remove_tokens(tokens.username)
        LOGGER.info("Signed out %s", tokens.username)
        self.hub.emit(AuthEvent.SIGNED_OUT)

    def fetch_auth_session(self) -> bool:
        """
        Return whether a usable session exists. An expired token is dropped
        and ``sessionExpired`` is published.
        """
        with self._lock:
            tokens = self._tokens
        if tokens is None:
            return False
        if tokens.is_expired():
            self.expire()
            return False
        return True

    def expire(self) -> None:
        """Drop the current tokens and publish ``sessionExpired``."""
        with self._lock:
            tokens = self._tokens
            self._tokens = None
        if tokens is None:
            return
        LOGGER.warning("Session expired for %s", tokens.username)
        self._remove_tokens(tokens.username)
        self.hub.emit(AuthEvent.SESSION_EXPIRED)
