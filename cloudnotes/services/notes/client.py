"""
Low-level GraphQL client for the Notes data API.

This "escape hatch" is also used internally by NotesService to implement
developer-friendly methods. It returns typed Pydantic models from
cloudnotes.services.notes.models.graphql and hides HTTP details.
"""

from __future__ import annotations

import json
import logging
import os
import time
from typing import Dict, Optional

from pydantic import ValidationError

from cloudnotes.services.http import (
    HttpClient,
    RemoteApiError,
    RemoteAuthError,
    RemoteError,
    RemoteRateLimited,
)

from .models.graphql import (
    CREATE_NOTE,
    DELETE_NOTE,
    LIST_NOTES,
    UPDATE_NOTE,
    CreateNoteInput,
    DeleteNoteInput,
    GraphQLRequest,
    GraphQLResponse,
    NoteConnection,
    NoteData,
    UpdateNoteInput,
)

LOGGER = logging.getLogger(__name__)

_AUTH_ERROR_TYPES = {"Unauthorized", "UnauthorizedException"}


# ------------------------------- Errors --------------------------------------

NotesError = RemoteError
NotesAuthError = RemoteAuthError
NotesRateLimited = RemoteRateLimited


class NotesApiError(RemoteApiError):
    """The API answered but reported GraphQL errors or an unexpected shape."""


# ------------------------------ Raw client -----------------------------------


class GraphQLNotesClient:
    """
    Raw GraphQL client for the Notes API.

    Methods map 1:1 to GraphQL operations:
      - listNotes
      - createNote
      - updateNote
      - deleteNote
    """

    def __init__(self, http: HttpClient):
        self._http = http
        LOGGER.info("GraphQLNotesClient initialized.")

    # ----- Execute -----

    def execute(
        self,
        query: str,
        variables: Optional[Dict] = None,
        *,
        operation_name: Optional[str] = None,
    ) -> Dict:
        """Run one GraphQL document and return its `data` object."""
        request = GraphQLRequest(
            query=query, variables=variables or {}, operationName=operation_name
        )
        # exclude_none would also strip explicit nulls inside variables
        payload = request.model_dump(
            exclude=None if operation_name else {"operationName"}
        )
        data = self._http.post_json("", payload)
        try:
            resp = GraphQLResponse.model_validate(data)
        except ValidationError as e:
            self._log_validation(operation_name or "graphql", data, e)
            LOGGER.error("GraphQL response validation failed.")
            raise NotesApiError("GraphQL response validation failed", payload=data)
        if resp.errors:
            LOGGER.error(
                "GraphQL %s returned errors: %s",
                operation_name or "operation",
                "; ".join(resp.error_messages),
            )
            if any(e.errorType in _AUTH_ERROR_TYPES for e in resp.errors):
                raise NotesAuthError("; ".join(resp.error_messages))
            raise NotesApiError(
                "; ".join(resp.error_messages),
                payload=[e.model_dump(exclude_none=True) for e in resp.errors],
            )
        if resp.data is None:
            raise NotesApiError("GraphQL response carried no data", payload=data)
        return resp.data

    def _field(self, data: Dict, name: str):
        if name not in data:
            raise NotesApiError(f"GraphQL response missing '{name}'", payload=data)
        return data[name]

    # ----- Queries -----

    def list_notes(
        self, *, limit: Optional[int] = None, next_token: Optional[str] = None
    ) -> NoteConnection:
        LOGGER.info("Executing listNotes (limit=%s)", limit)
        variables: Dict[str, object] = {}
        if limit is not None:
            variables["limit"] = limit
        if next_token:
            variables["nextToken"] = next_token
        data = self.execute(LIST_NOTES, variables, operation_name="ListNotes")
        raw = self._field(data, "listNotes")
        try:
            conn = NoteConnection.model_validate(raw or {})
        except ValidationError as e:
            self._log_validation("listNotes", data, e)
            raise NotesApiError("listNotes validation failed", payload=data)
        LOGGER.info("listNotes returned %d items.", len(conn.items))
        return conn

    # ----- Mutations -----

    def create_note(self, note: CreateNoteInput) -> NoteData:
        LOGGER.info("Executing createNote id=%s", note.id)
        variables = {"input": note.model_dump(exclude_none=True)}
        data = self.execute(CREATE_NOTE, variables, operation_name="CreateNote")
        return self._note_result("createNote", data)

    def update_note(self, note: UpdateNoteInput) -> Optional[NoteData]:
        LOGGER.info("Executing updateNote id=%s", note.id)
        # Explicit nulls clear a field remotely; only the id is mandatory
        variables = {"input": note.model_dump(exclude_unset=True)}
        data = self.execute(UPDATE_NOTE, variables, operation_name="UpdateNote")
        return self._note_result("updateNote", data, required=False)

    def delete_note(self, note_id: str) -> Optional[NoteData]:
        LOGGER.info("Executing deleteNote id=%s", note_id)
        variables = {"input": DeleteNoteInput(id=note_id).model_dump()}
        data = self.execute(DELETE_NOTE, variables, operation_name="DeleteNote")
        return self._note_result("deleteNote", data, required=False)

    def _note_result(
        self, op: str, data: Dict, *, required: bool = True
    ) -> Optional[NoteData]:
        raw = self._field(data, op)
        if raw is None:
            if not required:
                LOGGER.warning("%s returned null", op)
                return None
            raise NotesApiError(f"{op} returned null", payload=data)
        try:
            return NoteData.model_validate(raw)
        except ValidationError as e:
            self._log_validation(op, data, e)
            raise NotesApiError(f"{op} validation failed", payload=data)

    # ----- Debug -----

    @staticmethod
    def _log_validation(op: str, data: Dict, err: ValidationError) -> None:
        if not os.getenv("CLOUDNOTES_DEBUG"):
            return
        ts = time.strftime("%Y%m%d-%H%M%S")
        out_dir = os.path.join("workspace", "cloudnotes_debug")
        path = os.path.join(out_dir, f"{ts}_{op}_validation.json")
        try:
            os.makedirs(out_dir, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(
                    {"op": op, "errors": err.errors(), "data": data},
                    f,
                    ensure_ascii=False,
                    indent=2,
                    default=str,
                )
        except OSError as e:
            LOGGER.debug("Could not write validation dump: %s", e)
