"""Reclamation CLI commands.

This module provides CLI commands for listing a crew's reclamations and
showing a reclamation's history.
"""

from __future__ import annotations

import asyncio
import json
from typing import Annotated
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table

from solarcrew.errors import WorkflowError
from solarcrew.lifecycle.reclamation import CrewScope

app = typer.Typer(help="Reclamation commands")
console = Console()


@app.command("list")
def list_reclamations(
    crew_id: Annotated[str, typer.Argument(help="Crew UUID")],
    scope: Annotated[
        CrewScope,
        typer.Option("--scope", "-s", help="assigned or available"),
    ] = CrewScope.assigned,
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format (table or json)"),
    ] = "table",
) -> None:
    """List a crew's assigned reclamations or the pool it may take from."""
    from solarcrew.main import get_app_context

    workflow = get_app_context().services.reclamations

    try:
        reclamations = asyncio.run(workflow.list_for_crew(UUID(crew_id), scope))
    except ValueError:
        console.print(f"[red]Invalid crew ID:[/red] {crew_id}")
        raise typer.Exit(code=1)
    except WorkflowError as e:
        console.print(f"[red]{e.code}:[/red] {e.message}")
        raise typer.Exit(code=1)

    if format == "json":
        output = [
            {
                "id": str(r.id),
                "project_id": str(r.project_id),
                "status": r.status.value,
                "deadline": r.deadline.isoformat(),
                "current_crew_id": str(r.current_crew_id),
                "description": r.description,
            }
            for r in reclamations
        ]
        console.print(json.dumps(output, indent=2))
        return

    if not reclamations:
        console.print(f"[yellow]No {scope.value} reclamations[/yellow]")
        return

    table = Table(title=f"Reclamations ({scope.value})")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Project", style="dim", no_wrap=True)
    table.add_column("Status", style="magenta")
    table.add_column("Deadline")
    table.add_column("Description")

    for r in reclamations:
        table.add_row(
            str(r.id),
            str(r.project_id),
            r.status.value,
            r.deadline.isoformat(),
            r.description,
        )

    console.print(table)


@app.command()
def history(
    reclamation_id: Annotated[str, typer.Argument(help="Reclamation UUID")],
) -> None:
    """Show a reclamation's history."""
    from solarcrew.main import get_app_context

    workflow = get_app_context().services.reclamations

    try:
        entries = asyncio.run(workflow.history(UUID(reclamation_id)))
    except ValueError:
        console.print(f"[red]Invalid reclamation ID:[/red] {reclamation_id}")
        raise typer.Exit(code=1)
    except WorkflowError as e:
        console.print(f"[red]{e.code}:[/red] {e.message}")
        raise typer.Exit(code=1)

    table = Table(title="Reclamation History")
    table.add_column("When", style="dim")
    table.add_column("Action", style="magenta")
    table.add_column("Crew", style="cyan", no_wrap=True)
    table.add_column("Actor")
    table.add_column("Reason / notes")

    for e in entries:
        table.add_row(
            e.created_at.strftime("%Y-%m-%d %H:%M"),
            e.action.value,
            str(e.crew_id) if e.crew_id else "",
            e.actor_id or "",
            e.reason or e.notes or "",
        )

    console.print(table)
