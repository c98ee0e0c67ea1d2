"""Command modules for the cloudnotes CLI."""

# Import all command modules here for easy access
from cloudnotes.cli.commands import auth, notes

__all__ = ["auth", "notes"]
