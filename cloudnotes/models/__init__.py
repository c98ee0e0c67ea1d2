"""Shared Pydantic base for wire models."""

from ._base import ApiModel

__all__ = ["ApiModel"]
