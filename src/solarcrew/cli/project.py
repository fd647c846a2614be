"""Project lifecycle CLI commands.

This module provides CLI commands for inspecting projects, reading the
date-driven next-status suggestion, applying status changes and showing
project history.
"""

from __future__ import annotations

import asyncio
import json
from datetime import date
from typing import Annotated, Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from solarcrew.database.models.project import Project, ProjectStatus
from solarcrew.errors import WorkflowError
from solarcrew.lifecycle.validation import Actor, Role

app = typer.Typer(help="Project lifecycle commands")
console = Console()

STATUS_COLORS = {
    "planning": "dim",
    "paid": "green",
    "invoiced": "blue",
    "reclamation": "red",
}


def _fail(error: WorkflowError) -> typer.Exit:
    console.print(f"[red]{error.code}:[/red] {error.message}")
    return typer.Exit(code=1)


def _project_panel(project: Project, title: str) -> Panel:
    color = STATUS_COLORS.get(project.effective_status, "magenta")
    lines = [
        f"[bold]ID:[/bold] {project.id}",
        f"[bold]Name:[/bold] {project.name}",
        f"[bold]Schema:[/bold] {project.status_schema.value}",
        f"[bold]Status:[/bold] [{color}]{project.effective_status}[/{color}]",
    ]
    if project.under_reclamation:
        lines.append(f"[bold]Frozen status:[/bold] {project.status.value}")
    for label, value in (
        ("Equipment expected", project.equipment_expected_date),
        ("Equipment arrived", project.equipment_arrived_date),
        ("Work start", project.work_start_date),
        ("Work end", project.work_end_date),
    ):
        if value is not None:
            lines.append(f"[bold]{label}:[/bold] {value.isoformat()}")
    if project.invoice_number:
        lines.append(f"[bold]Invoice:[/bold] {project.invoice_number} {project.invoice_url or ''}")
    return Panel("\n".join(lines), title=title, border_style="cyan")


@app.command()
def show(
    project_id: Annotated[str, typer.Argument(help="Project UUID")],
) -> None:
    """Show a project's lifecycle state."""
    from solarcrew.main import get_app_context

    engine = get_app_context().services.status_engine

    try:
        project = asyncio.run(engine.get(UUID(project_id)))
    except ValueError:
        console.print(f"[red]Invalid project ID:[/red] {project_id}")
        raise typer.Exit(code=1)
    except WorkflowError as e:
        raise _fail(e)

    console.print(_project_panel(project, "Project"))


@app.command()
def suggest(
    project_id: Annotated[str, typer.Argument(help="Project UUID")],
    on: Annotated[
        Optional[str],
        typer.Option("--on", help="Reference date (YYYY-MM-DD, default today)"),
    ] = None,
) -> None:
    """Show the next status suggested by the project's dates."""
    from solarcrew.main import get_app_context

    engine = get_app_context().services.status_engine

    try:
        today = date.fromisoformat(on) if on else None
        suggestion = asyncio.run(engine.get_suggestion(UUID(project_id), today))
    except ValueError as e:
        console.print(f"[red]Invalid argument:[/red] {e}")
        raise typer.Exit(code=1)
    except WorkflowError as e:
        raise _fail(e)

    if suggestion is None:
        console.print("[yellow]No suggestion[/yellow]")
        return
    console.print(
        f"[green]Suggested:[/green] {suggestion.target.value} [dim]({suggestion.reason})[/dim]"
    )


@app.command()
def status(
    project_id: Annotated[str, typer.Argument(help="Project UUID")],
    target: Annotated[str, typer.Argument(help="Target status")],
    actor_id: Annotated[str, typer.Option("--actor", "-a", help="Acting user ID")],
    role: Annotated[
        str,
        typer.Option("--role", "-r", help="Acting role (admin or leader)"),
    ] = "admin",
    fast_forward: Annotated[
        bool,
        typer.Option("--fast-forward", help="Skip intermediate stages (admin only)"),
    ] = False,
) -> None:
    """Apply a status change to a project."""
    from solarcrew.main import get_app_context

    services = get_app_context().services

    try:
        target_status = ProjectStatus(target)
        actor = Actor(actor_id=actor_id, role=Role(role))
        pid = UUID(project_id)
    except ValueError as e:
        console.print(f"[red]Invalid argument:[/red] {e}")
        raise typer.Exit(code=1)

    async def _apply() -> Project:
        try:
            return await services.status_engine.apply_status(
                pid, target_status, actor, fast_forward=fast_forward
            )
        finally:
            await services.effects.drain()

    try:
        project = asyncio.run(_apply())
    except WorkflowError as e:
        raise _fail(e)

    console.print(_project_panel(project, "Status Updated"))


@app.command()
def history(
    project_id: Annotated[str, typer.Argument(help="Project UUID")],
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format (table or json)"),
    ] = "table",
) -> None:
    """Show a project's change history."""
    from solarcrew.main import get_app_context

    engine = get_app_context().services.status_engine

    try:
        entries = asyncio.run(engine.history(UUID(project_id)))
    except ValueError:
        console.print(f"[red]Invalid project ID:[/red] {project_id}")
        raise typer.Exit(code=1)
    except WorkflowError as e:
        raise _fail(e)

    if format == "json":
        output = [
            {
                "created_at": e.created_at.isoformat(),
                "actor_id": e.actor_id,
                "change_type": e.change_type.value,
                "field": e.field_name,
                "old": e.old_value,
                "new": e.new_value,
                "description": e.description,
                "irregular": e.irregular,
            }
            for e in entries
        ]
        console.print(json.dumps(output, indent=2))
        return

    if not entries:
        console.print("[yellow]No history[/yellow]")
        return

    table = Table(title="Project History")
    table.add_column("When", style="dim")
    table.add_column("Actor", style="cyan")
    table.add_column("Change", style="magenta")
    table.add_column("Old")
    table.add_column("New", style="bold")
    table.add_column("Note")

    for e in entries:
        change = e.change_type.value
        if e.irregular:
            change = f"[red]{change}[/red]"
        table.add_row(
            e.created_at.strftime("%Y-%m-%d %H:%M"),
            e.actor_id,
            change,
            e.old_value or "",
            e.new_value or "",
            e.description or "",
        )

    console.print(table)
