"""Login command for the cloudnotes CLI."""

from typing import Optional

import typer
from rich.console import Console

from cloudnotes.cli.utils import auth

app = typer.Typer(help="Sign in to the notes backend")
console = Console()


@app.callback(invoke_without_command=True)
def main(
    username: Optional[str] = typer.Option(None, help="Account username (email)"),
    password: Optional[str] = typer.Option(None, help="Account password"),
    auth_url: Optional[str] = typer.Option(None, help="Identity provider endpoint"),
    api_url: Optional[str] = typer.Option(None, help="Notes GraphQL endpoint"),
    storage_url: Optional[str] = typer.Option(None, help="Object storage endpoint"),
    save_config: bool = typer.Option(
        False, help="Save username and endpoints to config file"
    ),
):
    """Sign in and keep the session tokens for later commands."""
    endpoints = {
        name: value
        for name, value in (
            ("auth_url", auth_url),
            ("api_url", api_url),
            ("storage_url", storage_url),
        )
        if value
    }
    api = auth.get_api_instance(
        username, password, config=auth.build_config(**endpoints)
    )

    # Save to config if requested
    if save_config:
        config = auth.load_config()
        if username:
            config["username"] = username
        config.update(endpoints)
        auth.save_config(config)

    console.print(f"Successfully logged in as [bold]{api.account_name}[/bold]")
