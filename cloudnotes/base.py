"""Composition root for the remote services."""

from __future__ import annotations

import logging
from typing import Optional

import requests

from cloudnotes.config import ClientConfig, config_dir
from cloudnotes.exceptions import CloudNotesServiceUnavailable
from cloudnotes.services.auth import AuthService
from cloudnotes.services.notes import NotesService
from cloudnotes.services.storage import StorageService

LOGGER = logging.getLogger(__name__)

HEADER_DATA = {
    "Accept": "application/json",
    "User-Agent": "cloudnotes",
}


class CloudNotesService:
    """
    A client for the cloudnotes backend.

    Owns one ``requests.Session`` shared by the identity provider, the notes
    API and image storage. Notes and storage authenticate with whatever token
    the identity provider currently holds.

    Usage:
        from cloudnotes import CloudNotesService
        api = CloudNotesService("user@example.com")
        api.auth.sign_in("user@example.com", "password")
        api.notes.list()
    """

    def __init__(
        self,
        username: Optional[str] = None,
        *,
        config: Optional[ClientConfig] = None,
        session: Optional[requests.Session] = None,
        session_directory: Optional[str] = None,
    ) -> None:
        self.config: ClientConfig = config or ClientConfig.load()
        self.session: requests.Session = session or requests.Session()
        self.session.headers.update(HEADER_DATA)
        self._session_directory = session_directory or config_dir()

        self._auth = AuthService(
            self._require(self.config.auth_url, "auth_url"),
            self.session,
            config=self.config,
            session_dir=self._session_directory,
            username=username,
        )
        self._notes: Optional[NotesService] = None
        self._storage: Optional[StorageService] = None
        LOGGER.debug("CloudNotesService initialized for %s", username or "<anonymous>")

    @staticmethod
    def _require(url: str, name: str) -> str:
        if not url:
            raise CloudNotesServiceUnavailable(f"No endpoint configured for {name}")
        return url

    @property
    def auth(self) -> AuthService:
        return self._auth

    @property
    def notes(self) -> NotesService:
        """Gets the 'Notes' service."""
        if self._notes is None:
            self._notes = NotesService(
                self._require(self.config.api_url, "api_url"),
                self.session,
                config=self.config,
                token_provider=self._auth.access_token,
            )
        return self._notes

    @property
    def storage(self) -> StorageService:
        """Gets the image 'Storage' service."""
        if self._storage is None:
            self._storage = StorageService(
                self._require(self.config.storage_url, "storage_url"),
                self.session,
                config=self.config,
                token_provider=self._auth.access_token,
            )
        return self._storage

    @property
    def account_name(self) -> Optional[str]:
        return self._auth.username

    def __str__(self) -> str:
        return f"cloudnotes: {self.account_name or '<signed out>'}"

    def __repr__(self) -> str:
        return f"<{self}>"
