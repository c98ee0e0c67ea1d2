"""Utils."""

import getpass
from typing import Optional

import keyring
from keyring.errors import KeyringError

KEYRING_SYSTEM = "cloudnotes://cloudnotes-password"


def get_password(username: str, interactive: bool = True) -> str:
    """Get the password from a username."""
    try:
        password = get_password_from_keyring(username)
    except KeyringError:
        if not interactive:
            raise
        password = None

    if password or not interactive:
        return password or ""

    return getpass.getpass(f"Enter cloudnotes password for {username}: ")


def password_exists_in_keyring(username: str) -> bool:
    """Return true if the password of a username exists in the keyring."""
    try:
        return get_password_from_keyring(username) is not None
    except KeyringError:
        return False


def get_password_from_keyring(username: str) -> Optional[str]:
    """Get the password from a username."""
    return keyring.get_password(KEYRING_SYSTEM, username)


def store_password_in_keyring(username: str, password: str) -> None:
    """Store the password of a username."""
    return keyring.set_password(KEYRING_SYSTEM, username, password)


def delete_password_in_keyring(username: str) -> None:
    """Delete the password of a username."""
    return keyring.delete_password(KEYRING_SYSTEM, username)

