"""List command for the notes service."""

import typer
from rich.console import Console
from rich.table import Table

from cloudnotes.app import SyncState
from cloudnotes.cli.utils import auth

app = typer.Typer(help="List notes")
console = Console()


@app.callback(invoke_without_command=True)
def main():
    """List all notes in API order."""
    with auth.get_app() as notes_app:
        notes = list(notes_app.notes)

    if not notes:
        console.print("No notes found")
        return

    table = Table("ID", "Name", "Description", "Image")
    for note in notes:
        if not note.image_name:
            image_cell = ""
        elif note.image is not None:
            image_cell = f"{note.image_name} ({len(note.image)} bytes)"
        else:
            image_cell = f"{note.image_name} [yellow](not loaded)[/yellow]"
        name = note.name
        if note.sync_state is SyncState.DESYNCHRONIZED:
            name += " [red](out of sync)[/red]"
        table.add_row(note.id, name, note.description or "", image_cell)

    console.print(table)
