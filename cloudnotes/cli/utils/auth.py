"""Utility functions for the cloudnotes CLI commands."""

import json
import os
from typing import Any, Dict, Optional

import typer
from keyring.errors import KeyringError
from rich.console import Console
from rich.panel import Panel

from cloudnotes import CloudNotesService
from cloudnotes.app import NotesApp
from cloudnotes.config import (
    ClientConfig,
    config_dir,
    config_path,
    load_config_file,
    save_config_file,
)
from cloudnotes.exceptions import (
    CloudNotesAPIResponseException,
    CloudNotesFailedLoginException,
    CloudNotesServiceUnavailable,
)
from cloudnotes.utils import (
    delete_password_in_keyring,
    get_password_from_keyring,
    password_exists_in_keyring,
    store_password_in_keyring,
)

console = Console()


def session_path() -> str:
    return os.path.join(config_dir(), "session.json")


def load_config() -> Dict[str, Any]:
    """Load configuration from file."""
    return load_config_file(config_path())


def save_config(config: Dict[str, Any]) -> None:
    """Save configuration to file."""
    try:
        save_config_file(config, config_path())
    except OSError as exc:
        console.print(f"[yellow]Warning:[/yellow] Could not save config file: {exc}")


def saved_username() -> Optional[str]:
    try:
        with open(session_path(), "r", encoding="utf-8") as f:
            return json.load(f).get("username")
    except (json.JSONDecodeError, OSError):
        return None


def _save_credentials(username: str, password: Optional[str]) -> None:
    """Save user credentials."""
    os.makedirs(config_dir(), exist_ok=True)
    with open(session_path(), "w", encoding="utf-8") as f:
        json.dump({"username": username}, f)

    # Ensure file has restrictive permissions
    os.chmod(session_path(), 0o600)

    if password and not password_exists_in_keyring(username):
        if typer.confirm("Save password in keyring?", default=False):
            store_password_in_keyring(username, password)


def _get_username(provided_username: Optional[str] = None) -> str:
    """Determine the username: command line arg > session file > config file > prompt."""
    username = provided_username or saved_username() or load_config().get("username")
    if not username:
        username = typer.prompt("Username (email)")
    return username


def _get_password(username: str, provided_password: Optional[str] = None) -> str:
    """Get password from provided value, keyring, or prompt."""
    if provided_password:
        return provided_password

    try:
        password = get_password_from_keyring(username)
    except KeyringError:
        password = None
    if not password:
        password = typer.prompt("Password", hide_input=True)

    return password


def _handle_failed_login(
    username: str, failure_count: int, max_retries: int, exc: Exception
) -> None:
    """Handle failed login attempt."""
    # If stored password didn't work, delete it
    if password_exists_in_keyring(username):
        delete_password_in_keyring(username)

    if failure_count >= max_retries:
        console.print(
            f"[bold red]Error:[/bold red] Invalid username or password for {username}"
        )
        console.print(
            Panel(
                "Please check your username and password are correct.\n"
                "The identity provider endpoint is read from CLOUDNOTES_AUTH_URL\n"
                f"or from {config_path()}.",
                title="Authentication Help",
                border_style="red",
            )
        )
        raise typer.Exit(1) from exc
    console.print(
        f"[bold yellow]Warning:[/bold yellow] Login failed. Attempts remaining: {max_retries - failure_count}"
    )


def remove_session_files(username: Optional[str]) -> None:
    """Remove session-related files for a given username."""
    if not username:
        return

    if password_exists_in_keyring(username):
        delete_password_in_keyring(username)

    token_file = os.path.join(config_dir(), f"{username}.session")
    if os.path.exists(token_file):
        os.remove(token_file)


def build_config(**overrides: Any) -> ClientConfig:
    try:
        return ClientConfig.load(config_path(), **overrides)
    except ValueError as exc:
        console.print(f"[bold red]Error:[/bold red] Invalid configuration: {exc}")
        raise typer.Exit(1) from exc


def get_api_instance(
    username: Optional[str] = None,
    password: Optional[str] = None,
    max_retries: int = 3,
    config: Optional[ClientConfig] = None,
) -> CloudNotesService:
    """Get a signed-in CloudNotesService instance."""
    resolved_username = _get_username(username)
    try:
        api = CloudNotesService(resolved_username, config=config or build_config())
    except CloudNotesServiceUnavailable as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(1) from exc

    if api.auth.fetch_auth_session():
        return api

    failure_count = 0
    current_password: Optional[str] = None
    while failure_count < max_retries:
        try:
            if not current_password:
                current_password = _get_password(resolved_username, password)
            api.auth.sign_in(resolved_username, current_password)
            _save_credentials(resolved_username, current_password)
            return api

        except CloudNotesFailedLoginException as exc:
            failure_count += 1
            _handle_failed_login(resolved_username, failure_count, max_retries, exc)
            current_password = None
            password = None

        except (CloudNotesAPIResponseException, CloudNotesServiceUnavailable) as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            console.print(
                Panel(
                    "The backend returned an unexpected response.\n"
                    "This could be due to:\n"
                    "- Temporary service disruption\n"
                    "- Network connectivity issues\n"
                    "- Misconfigured endpoints\n\n"
                    "Please try again later or check your configuration.",
                    title="API Error",
                    border_style="red",
                )
            )
            raise typer.Exit(1) from exc

    console.print("[bold red]Error:[/bold red] Failed to authenticate")
    raise typer.Exit(1)


def get_app(timeout: Optional[float] = None) -> NotesApp:
    """Get a NotesApp whose collection has been loaded from the API."""
    api = get_api_instance()
    app = NotesApp(api)
    app.start()
    if not app.wait_idle(timeout):
        console.print("[yellow]Warning:[/yellow] Timed out loading notes")
    return app
