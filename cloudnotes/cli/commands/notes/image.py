"""Image download command for the notes service."""

from pathlib import Path

import typer
from rich.console import Console
from rich.progress import Progress

from cloudnotes.cli.utils import auth
from cloudnotes.cli.utils.notes import find_note
from cloudnotes.services.http import RemoteError

app = typer.Typer(help="Download the image of a note")
console = Console()


@app.callback(
    invoke_without_command=True,
    context_settings={"allow_interspersed_args": True},
)
def main(
    note_id: str = typer.Argument(..., help="ID of the note"),
    directory: Path = typer.Option(
        Path("."), file_okay=False, help="Directory to save the image in"
    ),
):
    """Save the image attached to a note."""
    with auth.get_app() as notes_app:
        note = find_note(notes_app, note_id)
        storage = notes_app.api.storage

    if not note.image_name:
        console.print(f"Note [bold]{note.id}[/bold] has no image")
        raise typer.Exit(1)

    data = note.image
    if data is None:
        # The background fetch failed; retry in the foreground
        try:
            with Progress(console=console, transient=True) as progress:
                task = progress.add_task(f"Downloading {note.image_name}", total=None)

                def _advance(done, total):
                    progress.update(task, completed=done, total=total)

                data = storage.download(note.image_name, progress=_advance)
        except RemoteError as e:
            console.print(f"[bold red]Error:[/bold red] {str(e)}")
            raise typer.Exit(1)

    directory.mkdir(parents=True, exist_ok=True)
    target = directory / note.image_name
    target.write_bytes(data)
    console.print(f"Saved [bold]{target}[/bold] ({len(data)} bytes)")
