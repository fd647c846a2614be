"""Main CLI entry point for Solarcrew.

This module provides the main Typer application with sub-commands for
project lifecycle and reclamation operations, plus the web server.

Usage:
    solarcrew serve --port 8000
    solarcrew project show <project-id>
    solarcrew project status <project-id> invoiced --actor alice --role admin
    solarcrew reclamation list <crew-id> --scope available
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from solarcrew.cli import project as project_cli
from solarcrew.cli import reclamation as reclamation_cli
from solarcrew.config import SolarcrewConfig, load_config
from solarcrew.database.connection import get_engine, get_session_factory
from solarcrew.lifecycle import WorkflowServices, build_services
from solarcrew.logging import setup_logging

app = typer.Typer(
    name="solarcrew",
    help="Solarcrew: project lifecycle and reclamation workflows",
    no_args_is_help=True,
)

app.add_typer(project_cli.app, name="project", help="Inspect and advance projects")
app.add_typer(reclamation_cli.app, name="reclamation", help="Inspect reclamations")

console = Console()


class AppContext:
    """Application context shared across CLI commands.

    Attributes:
        config: Loaded Solarcrew configuration
        engine: Async SQLAlchemy engine
        session_factory: Factory for creating database sessions
        services: Status engine and reclamation workflow
    """

    def __init__(self, config: SolarcrewConfig):
        self.config = config
        self.engine = get_engine(config.database)
        self.session_factory = get_session_factory(self.engine)
        self.services: WorkflowServices = build_services(config, self.session_factory)


# Global context holder
_app_context: AppContext | None = None


def get_app_context() -> AppContext:
    """Get the shared application context.

    Raises:
        RuntimeError: If context has not been initialized
    """
    if _app_context is None:
        raise RuntimeError("Application context not initialized. Call initialize_context first.")
    return _app_context


def initialize_context(config: SolarcrewConfig) -> AppContext:
    """Initialize the global application context."""
    global _app_context
    _app_context = AppContext(config)
    return _app_context


@app.command()
def serve(
    host: Annotated[
        Optional[str],
        typer.Option("--host", "-h", help="Host to bind to (default from config)"),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Port to bind to (default from config)"),
    ] = None,
) -> None:
    """Start the Solarcrew API server."""
    import uvicorn

    from solarcrew.web.app import create_app

    config = get_app_context().config
    host = host or config.web.host
    port = port or config.web.port

    console.print("[bold cyan]Starting Solarcrew API Server[/bold cyan]")
    console.print(f"[dim]Host:[/dim] {host}")
    console.print(f"[dim]Port:[/dim] {port}")
    console.print()

    uvicorn.run(
        create_app(config),
        host=host,
        port=port,
        log_level="info",
    )


@app.callback()
def main_callback(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure global options and initialize application context."""
    try:
        config = load_config(config_path)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(code=1) from e

    if verbose:
        config.logging.level = "DEBUG"
    setup_logging(config.logging)

    initialize_context(config)

    if verbose:
        console.print("[dim]Debug logging enabled[/dim]")


if __name__ == "__main__":
    app()
