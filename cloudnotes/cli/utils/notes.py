"""Helpers for the notes commands."""

from typing import Optional

import typer
from rich.console import Console

from cloudnotes.app import Note, NotesApp

console = Console()

DEFAULT_TIMEOUT = 120.0


def find_note(app: NotesApp, note_id: str) -> Note:
    """Look a note up by id, or by unique id prefix."""
    note = app.notes.get(note_id)
    if note is not None:
        return note
    matches = [n for n in app.notes if n.id.startswith(note_id)]
    if len(matches) == 1:
        return matches[0]
    if matches:
        console.print(f"[bold red]Error:[/bold red] Ambiguous note id '{note_id}'")
    else:
        console.print(f"[bold red]Error:[/bold red] Note '{note_id}' not found")
    app.close()
    raise typer.Exit(1)


def settle(app: NotesApp, timeout: Optional[float] = DEFAULT_TIMEOUT) -> None:
    """Wait for pushed changes to finish and exit non-zero if any failed."""
    try:
        if not app.wait_idle(timeout):
            console.print("[bold red]Error:[/bold red] Timed out waiting for the API")
            raise typer.Exit(1)
        failed = app.mutations.failed()
        for mutation in failed:
            console.print(
                f"[bold red]Error:[/bold red] {mutation.kind.value} of note "
                f"{mutation.note_id} failed: {mutation.error}"
            )
        if failed:
            raise typer.Exit(1)
    finally:
        app.close()
