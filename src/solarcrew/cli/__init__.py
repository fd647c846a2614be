"""Typer sub-command groups for the Solarcrew CLI."""
