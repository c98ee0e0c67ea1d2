"""
Shared HTTP transport for the remote services.

  - JSON requests via `json=payload`, raw bodies via `data=`
  - Bearer token taken from a provider callable on every request
  - Transient failures (429, 5xx, connection errors) retried with backoff
  - Bounded debug dumps (CLOUDNOTES_DEBUG, CLOUDNOTES_DEBUG_MAX_BYTES)
"""

from __future__ import annotations

import json
import logging
import os
import time
from typing import Callable, Dict, Iterator, Optional
from urllib.parse import urlencode

import requests
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

LOGGER = logging.getLogger(__name__)


# ------------------------------- Errors --------------------------------------


class RemoteError(Exception):
    """Base transport error."""


class RemoteAuthError(RemoteError):
    """Missing, expired or rejected credentials (401/403)."""


class RemoteRateLimited(RemoteError):
    """429 Too Many Requests."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class RemoteApiError(RemoteError):
    """Catch-all API error."""

    def __init__(
        self,
        message: str,
        payload: Optional[object] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.payload = payload
        self.status_code = status_code


class RemoteNotFound(RemoteApiError):
    """404 Not Found."""


class RemoteServerError(RemoteApiError):
    """5xx responses; considered transient."""


TRANSIENT_ERRORS = (
    RemoteRateLimited,
    RemoteServerError,
    requests.ConnectionError,
    requests.Timeout,
)


def _backoff(min_wait: float, max_wait: float) -> Callable[[RetryCallState], float]:
    exponential = wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait)

    def _wait(retry_state: RetryCallState) -> float:
        delay = exponential(retry_state)
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(exc, RemoteRateLimited) and exc.retry_after:
            delay = max(delay, min(exc.retry_after, max_wait))
        return delay

    return _wait


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    LOGGER.warning(
        "Transient failure on attempt %d, retrying: %s",
        retry_state.attempt_number,
        exc,
    )


# ------------------------------- Transport -----------------------------------


class HttpClient:
    """Minimal HTTP transport shared by the auth, notes and storage services."""

    def __init__(
        self,
        base_url: str,
        session,
        base_params: Optional[Dict[str, object]] = None,
        *,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        timeout: float = 30.0,
        retry_attempts: int = 3,
        retry_min_wait: float = 0.5,
        retry_max_wait: float = 8.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._session = session
        self._params = self._normalize_params(base_params or {})
        self._token_provider = token_provider
        self._timeout = timeout
        self._retry_attempts = max(1, retry_attempts)
        self._retry_min_wait = retry_min_wait
        self._retry_max_wait = retry_max_wait
        LOGGER.debug("Initialized HttpClient with base_url: %s", self._base_url)

    @property
    def base_url(self) -> str:
        return self._base_url

    @staticmethod
    def _normalize_params(params: Dict[str, object]) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for k, v in params.items():
            if isinstance(v, bool):
                out[k] = "true" if v else "false"
            else:
                out[k] = str(v)
        return out

    def build_url(self, path: str = "") -> str:
        q = urlencode(self._params)
        return f"{self._base_url}{path}" + (f"?{q}" if q else "")

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        token = self._token_provider() if self._token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if extra:
            headers.update(extra)
        return headers

    def _retrying(self) -> Retrying:
        return Retrying(
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            stop=stop_after_attempt(self._retry_attempts),
            wait=_backoff(self._retry_min_wait, self._retry_max_wait),
            before_sleep=_log_retry,
            reraise=True,
        )

    def request(
        self,
        method: str,
        path: str = "",
        *,
        json_payload: Optional[Dict] = None,
        data=None,
        headers: Optional[Dict[str, str]] = None,
        stream: bool = False,
    ):
        """Send a request, retrying transient failures, and return the response."""
        url = self.build_url(path)
        for attempt in self._retrying():
            with attempt:
                LOGGER.info("%s to %s", method, url)
                resp = self._session.request(
                    method,
                    url,
                    json=json_payload,
                    data=data() if callable(data) else data,
                    headers=self._headers(headers),
                    timeout=self._timeout,
                    stream=stream,
                )
                try:
                    self._raise_for_status(method, path, url, json_payload, resp)
                except RemoteError:
                    # A streamed error response still holds its pooled connection
                    if stream:
                        resp.close()
                    raise
        return resp

    def post_json(self, path: str, payload: Dict) -> Dict:
        url = self.build_url(path)
        resp = self.request("POST", path, json_payload=payload)
        try:
            json_response = resp.json()
            LOGGER.debug("Successfully parsed JSON response from %s", url)
            return json_response
        except ValueError:
            self._dump_http_debug(path.strip("/") or "root", url, payload, resp)
            LOGGER.error("Failed to parse JSON response from %s", url)
            raise RemoteApiError(
                "Invalid JSON response", payload=getattr(resp, "text", None)
            )

    def iter_content(self, resp, chunk_size: int = 65536) -> Iterator[bytes]:
        for chunk in resp.iter_content(chunk_size=chunk_size):
            if chunk:
                yield chunk

    def _raise_for_status(self, method, path, url, payload, resp) -> None:
        code = getattr(resp, "status_code", 0)
        LOGGER.debug("%s to %s returned status %d", method, url, code)
        if code < 400:
            return
        self._dump_http_debug(
            f"{method.lower()}_{path.strip('/') or 'root'}", url, payload or {}, resp
        )
        if code in (401, 403):
            LOGGER.error("%s to %s failed with auth error: %d", method, url, code)
            raise RemoteAuthError(f"HTTP {code}: unauthorized")
        if code == 429:
            retry_after = None
            hdr = (getattr(resp, "headers", None) or {}).get("Retry-After")
            if hdr:
                try:
                    retry_after = float(hdr)
                except ValueError:
                    retry_after = None
            LOGGER.warning(
                "%s to %s was rate-limited. Retry after: %s", method, url, retry_after
            )
            raise RemoteRateLimited("HTTP 429: rate limited", retry_after=retry_after)
        # Try to include server json error if possible
        try:
            body = resp.json()
        except ValueError:
            body = getattr(resp, "text", None)
        LOGGER.error("%s to %s failed with code %d", method, url, code)
        if code == 404:
            raise RemoteNotFound(f"HTTP {code}", payload=body, status_code=code)
        if code >= 500:
            raise RemoteServerError(f"HTTP {code}", payload=body, status_code=code)
        raise RemoteApiError(f"HTTP {code}", payload=body, status_code=code)

    @staticmethod
    def _dump_http_debug(op: str, url: str, payload: Dict, resp) -> None:
        if not os.getenv("CLOUDNOTES_DEBUG"):
            return
        ts = time.strftime("%Y%m%d-%H%M%S")
        out_dir = os.path.join("workspace", "cloudnotes_debug")
        op = op.replace("/", "_")
        try:
            os.makedirs(out_dir, exist_ok=True)
            req_path = os.path.join(out_dir, f"{ts}_{op}_http_request.json")
            with open(req_path, "w", encoding="utf-8") as f:
                json.dump(
                    {"url": url, "payload": payload},
                    f,
                    ensure_ascii=False,
                    indent=2,
                    default=str,
                )
            res_path = os.path.join(out_dir, f"{ts}_{op}_http_response.txt")
            status = getattr(resp, "status_code", None)
            headers = getattr(resp, "headers", {}) or {}
            body_text = getattr(resp, "text", None)
            with open(res_path, "w", encoding="utf-8") as f:
                f.write(f"status={status}\nurl={url}\nheaders={dict(headers)}\n\n")
                if isinstance(body_text, str):
                    max_bytes = int(os.getenv("CLOUDNOTES_DEBUG_MAX_BYTES", "524288"))
                    if len(body_text) > max_bytes:
                        f.write(body_text[:max_bytes] + "\n[truncated]\n")
                    else:
                        f.write(body_text)
        except OSError as e:
            LOGGER.debug("Could not write HTTP debug dump: %s", e)
