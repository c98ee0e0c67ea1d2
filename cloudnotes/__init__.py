"""cloudnotes: client for a cloud-backed notes application."""

import logging

from cloudnotes.base import CloudNotesService

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = ["CloudNotesService"]
