#!/usr/bin/env python
"""Command line interface for cloudnotes."""

import logging
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from cloudnotes.cli.commands import auth, notes
from cloudnotes.config import load_config_file

app = typer.Typer(help="Command Line Interface for cloudnotes")
console = Console()

# Add command groups
app.add_typer(auth.app, name="auth")
app.add_typer(notes.app, name="notes")


@app.callback()
def callback(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", envvar="CLOUDNOTES_LOG_LEVEL", help="Logging level"
    ),
):
    """Interact with a cloud-backed notes application."""
    level = log_level or load_config_file().get("log_level") or "WARNING"
    logging.basicConfig(
        level=str(level).upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
