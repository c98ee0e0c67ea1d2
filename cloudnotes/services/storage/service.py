"""
Object storage for note images.

Blobs are addressed by key under the configured prefix:

  PUT    {storage_url}/{prefix}{key}   upload
  GET    {storage_url}/{prefix}{key}   download (streamed)
  DELETE {storage_url}/{prefix}{key}   remove

Uploads and downloads accept an optional progress callback receiving
``(bytes_done, bytes_total)``; ``bytes_total`` is None when the server does
not announce a Content-Length.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Dict, Iterator, Optional
from urllib.parse import quote

from cloudnotes.services.base import BaseService
from cloudnotes.services.http import HttpClient, RemoteError, RemoteNotFound

LOGGER = logging.getLogger(__name__)

Progress = Callable[[int, Optional[int]], None]

StorageError = RemoteError
StorageNotFound = RemoteNotFound


class _ProgressReader:
    """Sized file-like body that reports how much of it has been read."""

    def __init__(self, data: bytes, progress: Progress):
        self._data = data
        self._progress = progress
        self._offset = 0

    def __len__(self) -> int:
        return len(self._data) - self._offset

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            size = len(self)
        chunk = self._data[self._offset : self._offset + size]
        if chunk:
            self._offset += len(chunk)
            self._progress(self._offset, len(self._data))
        return chunk


class StorageService(BaseService):
    """Upload, download and delete image blobs by key."""

    def __init__(
        self,
        service_root: str,
        session,
        params: Optional[Dict[str, object]] = None,
        *,
        config=None,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
    ):
        super().__init__(
            service_root=service_root,
            session=session,
            params=params,
            config=config,
            token_provider=token_provider,
        )
        self._http = HttpClient(
            self.service_root,
            session,
            self.params,
            token_provider=token_provider,
            timeout=self.config.request_timeout,
            retry_attempts=self.config.retry_attempts,
            retry_min_wait=self.config.retry_min_wait,
            retry_max_wait=self.config.retry_max_wait,
        )
        self._prefix = self.config.storage_prefix or ""
        self._chunk_size = self.config.chunk_size

    def _path(self, key: str) -> str:
        if not key:
            raise ValueError("Storage key must not be empty")
        return "/" + quote(f"{self._prefix}{key}")

    def upload(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str = "application/octet-stream",
        progress: Optional[Progress] = None,
    ) -> str:
        """Store ``data`` under ``key`` and return the key."""
        total = len(data)

        LOGGER.info("Uploading %d bytes to key %s", total, key)
        self._http.request(
            "PUT",
            self._path(key),
            # requests sizes the reader for Content-Length
            data=(lambda: _ProgressReader(data, progress)) if progress else data,
            headers={"Content-Type": content_type},
        )
        if progress and total == 0:
            progress(0, 0)
        LOGGER.debug("Upload of %s complete", key)
        return key

    def iter_download(
        self, key: str, *, progress: Optional[Progress] = None
    ) -> Iterator[bytes]:
        """Yield the blob stored under ``key`` in chunks."""
        LOGGER.info("Downloading key %s", key)
        resp = self._http.request("GET", self._path(key), stream=True)
        total: Optional[int] = None
        length = (getattr(resp, "headers", None) or {}).get("Content-Length")
        if length and str(length).isdigit():
            total = int(length)
        done = 0
        for chunk in self._http.iter_content(resp, chunk_size=self._chunk_size):
            done += len(chunk)
            if progress:
                progress(done, total)
            yield chunk

    def download(self, key: str, *, progress: Optional[Progress] = None) -> bytes:
        """Return the blob stored under ``key``."""
        blob = b"".join(self.iter_download(key, progress=progress))
        LOGGER.debug("Downloaded %d bytes for key %s", len(blob), key)
        return blob

    def download_to(self, key: str, directory: str) -> str:
        LOGGER.info("Downloading key %s to directory %s", key, directory)
        os.makedirs(directory, exist_ok=True)
        path = os.path.join(directory, os.path.basename(key))
        with open(path, "wb") as f:
            for chunk in self.iter_download(key):
                f.write(chunk)
        LOGGER.info("Finished downloading key %s to %s", key, path)
        return path

    def remove(self, key: str) -> None:
        """Delete the blob stored under ``key``."""
        LOGGER.info("Removing key %s", key)
        self._http.request("DELETE", self._path(key))
