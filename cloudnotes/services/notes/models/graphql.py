"""
GraphQL "wire" models for the Notes data API.
- Request envelope + operation documents.
- Response envelope, error items and the NoteData record shape.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import Field, JsonValue

from cloudnotes.models import ApiModel

# ---------------------------------------------------------------------------
# Operation documents
# ---------------------------------------------------------------------------

NOTE_FIELDS = "id name description image"

LIST_NOTES = f"""query ListNotes($filter: ModelNoteFilterInput, $limit: Int, $nextToken: String) {{
  listNotes(filter: $filter, limit: $limit, nextToken: $nextToken) {{
    items {{ {NOTE_FIELDS} }}
    nextToken
  }}
}}"""

CREATE_NOTE = f"""mutation CreateNote($input: CreateNoteInput!) {{
  createNote(input: $input) {{ {NOTE_FIELDS} }}
}}"""

UPDATE_NOTE = f"""mutation UpdateNote($input: UpdateNoteInput!) {{
  updateNote(input: $input) {{ {NOTE_FIELDS} }}
}}"""

DELETE_NOTE = f"""mutation DeleteNote($input: DeleteNoteInput!) {{
  deleteNote(input: $input) {{ {NOTE_FIELDS} }}
}}"""


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class NoteData(ApiModel):
    """A Note record as stored by the data API."""

    id: str
    name: str
    description: Optional[str] = None
    # Name of the image blob in object storage
    image: Optional[str] = None


class NoteConnection(ApiModel):
    """Paged list result (`listNotes`)."""

    items: List[Optional[NoteData]] = Field(default_factory=list)
    nextToken: Optional[str] = None


# ---------------------------------------------------------------------------
# Request-side
# ---------------------------------------------------------------------------


class CreateNoteInput(NoteData):
    pass


class UpdateNoteInput(ApiModel):
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None


class DeleteNoteInput(ApiModel):
    id: str


class GraphQLRequest(ApiModel):
    query: str
    variables: Dict[str, JsonValue] = Field(default_factory=dict)
    operationName: Optional[str] = None


# ---------------------------------------------------------------------------
# Response-side
# ---------------------------------------------------------------------------


class GraphQLErrorLocation(ApiModel):
    line: int
    column: int


class GraphQLErrorItem(ApiModel):
    """
    One entry of the top-level `errors` array. AppSync-style backends add
    `errorType`; `path` names the failing field.
    """

    message: str
    path: Optional[List[JsonValue]] = None
    locations: Optional[List[GraphQLErrorLocation]] = None
    errorType: Optional[str] = None
    extensions: Optional[Dict[str, JsonValue]] = None


class GraphQLResponse(ApiModel):
    data: Optional[Dict[str, Any]] = None
    errors: Optional[List[GraphQLErrorItem]] = None

    @property
    def error_messages(self) -> List[str]:
        return [e.message for e in self.errors or []]


__all__ = [
    "NOTE_FIELDS",
    "LIST_NOTES",
    "CREATE_NOTE",
    "UPDATE_NOTE",
    "DELETE_NOTE",
    "NoteData",
    "NoteConnection",
    "CreateNoteInput",
    "UpdateNoteInput",
    "DeleteNoteInput",
    "GraphQLRequest",
    "GraphQLErrorLocation",
    "GraphQLErrorItem",
    "GraphQLResponse",
]
