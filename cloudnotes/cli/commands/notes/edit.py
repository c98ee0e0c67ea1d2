"""Edit command for the notes service."""

from typing import Optional

import typer
from rich.console import Console

from cloudnotes.cli.utils import auth
from cloudnotes.cli.utils.notes import find_note, settle

app = typer.Typer(help="Edit a note")
console = Console()


@app.callback(
    invoke_without_command=True,
    context_settings={"allow_interspersed_args": True},
)
def main(
    note_id: str = typer.Argument(..., help="ID of the note"),
    name: Optional[str] = typer.Option(None, help="New name for the note"),
    description: Optional[str] = typer.Option(
        None, help="New description for the note"
    ),
):
    """Change the name or description of a note."""
    if name is None and description is None:
        console.print("[yellow]Warning:[/yellow] No updates specified")
        return

    changes = {}
    if name is not None:
        changes["name"] = name
    if description is not None:
        changes["description"] = description

    notes_app = auth.get_app()
    note = find_note(notes_app, note_id)
    notes_app.edit_note(note, **changes)
    settle(notes_app)

    console.print(f"Updated note [bold]{note.id}[/bold]")
