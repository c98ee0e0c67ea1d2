from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict

_MODES = {"allow", "forbid", "ignore"}
_STRICT = {"1", "true", "yes", "on", "strict"}
_LENIENT = {"0", "false", "no", "off", "lenient"}


def extra_mode(value: str | None, default: str = "ignore") -> str:
    """Map a CLOUDNOTES_EXTRA value to a pydantic ``extra`` setting."""
    mode = (value or "").strip().lower()
    if mode in _MODES:
        return mode
    if mode in _STRICT:
        return "forbid"
    if mode in _LENIENT:
        return "allow"
    return default


class ApiModel(BaseModel):
    """
    Base for every wire payload.

    GraphQL records carry bookkeeping fields (__typename, createdAt, owner)
    that are ignored unless CLOUDNOTES_EXTRA is set before import.
    """

    model_config = ConfigDict(
        extra=extra_mode(os.getenv("CLOUDNOTES_EXTRA")),
        populate_by_name=True,
    )


__all__ = ["ApiModel", "extra_mode"]
