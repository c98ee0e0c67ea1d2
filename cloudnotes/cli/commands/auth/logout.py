"""Logout command for the cloudnotes CLI."""

import os

import typer
from rich.console import Console

from cloudnotes import CloudNotesService
from cloudnotes.cli.utils import auth
from cloudnotes.config import config_path
from cloudnotes.exceptions import CloudNotesException

app = typer.Typer(help="Sign out of the notes backend")
console = Console()


@app.callback(invoke_without_command=True)
def main(
    remove_all: bool = typer.Option(
        False, help="Remove all sessions and configuration files"
    ),
):
    """Sign out and remove saved credentials."""
    username = auth.saved_username()
    if username:
        try:
            api = CloudNotesService(username, config=auth.build_config())
            if api.auth.is_signed_in:
                api.auth.sign_out()
        except CloudNotesException as exc:
            console.print(f"[yellow]Warning:[/yellow] {exc}")

    try:
        if os.path.exists(auth.session_path()):
            os.remove(auth.session_path())

        # Remove user-specific files
        auth.remove_session_files(username)

        # Remove config file if requested
        if remove_all and os.path.exists(config_path()):
            os.remove(config_path())
            console.print("Removed all configuration files")
    except OSError as exc:
        console.print(
            f"[bold red]Error:[/bold red] Could not completely remove session data: {exc}"
        )
        raise typer.Exit(1) from exc

    if username:
        console.print("[green]Logged out successfully[/green]")
    else:
        console.print("No active session found or already logged out")
