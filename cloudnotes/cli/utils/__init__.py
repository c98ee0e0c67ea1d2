"""Helpers shared by the CLI commands."""
