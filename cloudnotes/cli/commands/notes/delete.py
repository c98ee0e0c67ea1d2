"""Delete command for the notes service."""

import typer
from rich.console import Console

from cloudnotes.cli.utils import auth
from cloudnotes.cli.utils.notes import find_note, settle

app = typer.Typer(help="Delete a note")
console = Console()


@app.callback(
    invoke_without_command=True,
    context_settings={"allow_interspersed_args": True},
)
def main(
    note_id: str = typer.Argument(..., help="ID of the note to delete"),
    force: bool = typer.Option(
        False, "--force", "-f", help="Delete without confirmation"
    ),
):
    """Delete a note and its image."""
    if not force:
        confirmed = typer.confirm(f"Are you sure you want to delete note {note_id}?")
        if not confirmed:
            console.print("Deletion cancelled")
            return

    notes_app = auth.get_app()
    note = find_note(notes_app, note_id)
    notes_app.delete_note(note)
    settle(notes_app)

    console.print(f"Deleted note [bold]{note.id}[/bold]")
