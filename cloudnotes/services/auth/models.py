"""Pydantic models for the identity provider."""

from __future__ import annotations

import time
from enum import Enum
from typing import Optional

from pydantic import Field

from cloudnotes.models import ApiModel


class AuthEvent(str, Enum):
    """Events published on the auth hub."""

    SIGNED_IN = "signedIn"
    SIGNED_OUT = "signedOut"
    SESSION_EXPIRED = "sessionExpired"


class SignInRequest(ApiModel):
    username: str
    password: str


class SignInResponse(ApiModel):
    access_token: str = Field(..., alias="accessToken")
    refresh_token: Optional[str] = Field(None, alias="refreshToken")
    expires_in: Optional[int] = Field(None, alias="expiresIn")
    username: Optional[str] = None


class AuthTokens(ApiModel):
    """Tokens held for the signed-in user; persisted in the session file."""

    username: str
    access_token: str = Field(..., alias="accessToken")
    refresh_token: Optional[str] = Field(None, alias="refreshToken")
    # Seconds since epoch; None means the provider did not announce an expiry
    expires_at: Optional[float] = Field(None, alias="expiresAt")

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now if now is not None else time.time()) >= self.expires_at

    @classmethod
    def from_response(
        cls, username: str, resp: SignInResponse, now: Optional[float] = None
    ) -> "AuthTokens":
        issued = now if now is not None else time.time()
        return cls(
            username=resp.username or username,
            access_token=resp.access_token,
            refresh_token=resp.refresh_token,
            expires_at=(issued + resp.expires_in) if resp.expires_in else None,
        )
