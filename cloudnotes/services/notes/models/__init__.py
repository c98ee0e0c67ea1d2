"""Public exports for Notes service data models."""

from __future__ import annotations

from .dto import NoteRecord
from .graphql import GraphQLErrorItem, GraphQLResponse, NoteData

__all__ = [
    "NoteRecord",
    "NoteData",
    "GraphQLErrorItem",
    "GraphQLResponse",
]
