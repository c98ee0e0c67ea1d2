"""Status command for the cloudnotes CLI."""

import typer
from rich.console import Console

from cloudnotes import CloudNotesService
from cloudnotes.cli.utils import auth
from cloudnotes.exceptions import CloudNotesException

app = typer.Typer(help="Check authentication status")
console = Console()


@app.callback(invoke_without_command=True)
def main():
    """Check authentication status."""
    username = auth.saved_username()
    if not username:
        console.print("[yellow]Not logged in[/yellow]")
        return

    try:
        api = CloudNotesService(username, config=auth.build_config())
    except CloudNotesException as exc:
        console.print(f"[bold red]Error:[/bold red] Could not check status: {exc}")
        raise typer.Exit(1) from exc

    # A restored session is only usable while its access token is valid
    if api.auth.fetch_auth_session():
        console.print(f"[green]Logged in as:[/green] [bold]{api.account_name}[/bold]")
    else:
        console.print("[yellow]Session exists but requires re-authentication[/yellow]")
