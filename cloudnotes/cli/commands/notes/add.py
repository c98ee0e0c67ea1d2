"""Add command for the notes service."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from cloudnotes.cli.utils import auth
from cloudnotes.cli.utils.notes import settle

app = typer.Typer(help="Create a note")
console = Console()


@app.callback(
    invoke_without_command=True,
    context_settings={"allow_interspersed_args": True},
)
def main(
    name: str = typer.Argument(..., help="Name of the note"),
    description: Optional[str] = typer.Option(None, help="Description of the note"),
    image: Optional[Path] = typer.Option(
        None, exists=True, dir_okay=False, readable=True, help="Image file to attach"
    ),
):
    """Create a note, optionally with an image."""
    data = image.read_bytes() if image else None

    notes_app = auth.get_app()
    note = notes_app.create_note(name, description, data)
    settle(notes_app)

    console.print(f"Created note [bold]{note.name}[/bold] ({note.id})")
