"""Example of how to drive the notes client from a script."""

import argparse
import logging
from typing import Optional

from rich.console import Console
from rich.traceback import install

from cloudnotes import CloudNotesService
from cloudnotes.app import Note, NotesApp
from cloudnotes.app.state import CollectionEvent
from cloudnotes.exceptions import CloudNotesFailedLoginException
from cloudnotes.utils import get_password

install(show_locals=True)

console = Console()


def show(event: CollectionEvent, note: Optional[Note]) -> None:
    if note is None:
        console.print(f"[dim]{event.value}[/dim]")
    else:
        console.print(
            f"[dim]{event.value}[/dim] {note.name} "
            f"([italic]{note.sync_state.value}[/italic])"
        )


def main():
    """Main function."""
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="Notes client example.")
    parser.add_argument("--username", required=True, help="Account username.")
    parser.add_argument(
        "--password",
        help="Account password. If not provided, you will be prompted.",
    )
    parser.add_argument("--name", default="Hello from cloudnotes")
    parser.add_argument("--image", help="Path to an image to attach.")
    args = parser.parse_args()

    api = CloudNotesService(args.username)
    with NotesApp(api) as app:
        app.notes.observe(show)
        app.start()
        if not app.is_signed_in:
            password = args.password or get_password(args.username)
            try:
                app.sign_in(args.username, password)
            except CloudNotesFailedLoginException as exc:
                logging.error("%s", exc)
                return
        app.wait_idle(timeout=30)

        image = None
        if args.image:
            with open(args.image, "rb") as f:
                image = f.read()
        app.create_note(args.name, "created by examples/notes.py", image)
        app.wait_idle(timeout=30)

        console.rule(f"{len(app.notes)} notes")
        for note in app.notes:
            console.print(note)


if __name__ == "__main__":
    main()
