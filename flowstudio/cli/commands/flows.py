"""Flow commands: list, create, show, deploy, archive."""

import asyncio
from typing import Annotated, Optional

import typer
from rich.panel import Panel
from rich.table import Table

from flowstudio.cli.utils import console, status_markup
from flowstudio.exceptions import FlowStudioError
from flowstudio.schemas import FlowCreate, FlowRecord, Step


def _fail(error: FlowStudioError) -> None:
    console.print(f"[red]{error}[/red]")
    console.print(f"[dim]Correlation ID: {error.correlation_id}[/dim]")
    raise typer.Exit(code=1)


def _steps_table(title: str, steps: list[Step]) -> Table:
    table = Table(title=title, show_header=True)
    table.add_column("#", justify="right")
    table.add_column("Type", style="cyan")
    table.add_column("ID", style="dim", max_width=14)
    table.add_column("Tracking event")
    for step in steps:
        table.add_row(str(step.order), step.type, step.id[:12], step.tracking_event_name or "-")
    return table


def flows(
    status: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option("--status", "-s", help="Filter by status (draft, active, archived)"),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-l", help="Maximum flows to show"),
    ] = 50,
) -> None:
    """List flows, newest first."""
    asyncio.run(_list_flows(status, limit))


async def _list_flows(status: str | None, limit: int) -> None:
    from flowstudio.services.persistence import PersistenceGateway
    from flowstudio.storage import close_db
    from flowstudio.storage.entities.flow import FlowStatus

    status_filter = None
    if status:
        try:
            status_filter = FlowStatus(status.lower())
        except ValueError:
            console.print(f"[red]Invalid status: {status}[/red]")
            raise typer.Exit(code=1) from None

    try:
        records = await PersistenceGateway().list_flows(status=status_filter, limit=limit)
    except FlowStudioError as e:
        _fail(e)
    finally:
        await close_db()

    if not records:
        console.print("[dim]No flows found. Create one with 'flowstudio create'.[/dim]")
        return

    table = Table(title=f"Flows ({len(records)})", show_header=True)
    table.add_column("ID", style="cyan", max_width=12)
    table.add_column("Name", max_width=30)
    table.add_column("Status")
    table.add_column("Version", justify="right")
    table.add_column("Traffic", justify="right")
    table.add_column("Created")
    for record in records:
        table.add_row(
            record.id[:8] + "...",
            record.name[:30],
            status_markup(record.status),
            record.version,
            f"{record.traffic_percentage}%",
            record.created_at.strftime("%Y-%m-%d %H:%M") if record.created_at else "-",
        )
    console.print(table)


def create(
    name: Annotated[str, typer.Argument(help="Flow name")],
    description: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option("--description", "-d", help="Flow description"),
    ] = None,
    traffic: Annotated[
        Optional[int],  # noqa: UP007
        typer.Option("--traffic", "-t", min=0, max=100, help="Traffic percentage (0-100)"),
    ] = None,
    preset: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option("--preset", "-p", help="Seed steps from a preset (quick-start, personalized, minimal)"),
    ] = None,
    template: Annotated[
        Optional[list[str]],  # noqa: UP007
        typer.Option("--template", help="Seed a step from this template id (repeatable)"),
    ] = None,
) -> None:
    """Create a draft flow."""
    asyncio.run(_create_flow(name, description, traffic, preset, template or []))


async def _create_flow(
    name: str,
    description: str | None,
    traffic: int | None,
    preset: str | None,
    template_ids: list[str],
) -> None:
    from flowstudio.services.catalog import FLOW_PRESETS
    from flowstudio.services.persistence import PersistenceGateway
    from flowstudio.storage import close_db

    if preset:
        if preset not in FLOW_PRESETS:
            console.print(f"[red]Unknown preset: {preset}[/red]")
            console.print(f"[dim]Available: {', '.join(sorted(FLOW_PRESETS))}[/dim]")
            raise typer.Exit(code=1)
        template_ids = list(FLOW_PRESETS[preset]["templates"]) + template_ids

    attrs = FlowCreate(name=name, description=description, traffic_percentage=traffic)
    gateway = PersistenceGateway()
    try:
        if template_ids:
            record, steps = await gateway.create_from_template(attrs, template_ids)
        else:
            record, steps = await gateway.create_flow(attrs), []
    except FlowStudioError as e:
        _fail(e)
    finally:
        await close_db()

    console.print(f"[green]Created draft flow {record.id} ({record.name}) with {len(steps)} steps[/green]")


def show(flow_id: Annotated[str, typer.Argument(help="Flow ID")]) -> None:
    """Show a flow and its steps."""
    asyncio.run(_show_flow(flow_id))


async def _show_flow(flow_id: str) -> None:
    from flowstudio.services.persistence import PersistenceGateway
    from flowstudio.storage import close_db

    gateway = PersistenceGateway()
    try:
        record = await gateway.get_flow(flow_id)
        steps = await gateway.load_steps(flow_id)
    except FlowStudioError as e:
        _fail(e)
    finally:
        await close_db()

    console.print(_flow_panel(record))
    if steps:
        console.print(_steps_table(f"Steps ({len(steps)})", steps))
    else:
        console.print("[dim]No steps.[/dim]")


def _flow_panel(record: FlowRecord) -> Panel:
    source = f"\n[bold]Deployed from:[/bold] {record.source_flow_id}" if record.source_flow_id else ""
    return Panel(
        f"[bold]Name:[/bold] {record.name}\n"
        f"[bold]Status:[/bold] {status_markup(record.status)}\n"
        f"[bold]Version:[/bold] {record.version}\n"
        f"[bold]Traffic:[/bold] {record.traffic_percentage}%\n"
        f"[bold]Description:[/bold] {record.description or 'N/A'}"
        f"{source}",
        title=f"Flow {record.id}",
        border_style="blue",
    )


def deploy(flow_id: Annotated[str, typer.Argument(help="Draft flow ID to deploy")]) -> None:
    """Deploy a draft as a new active version."""
    asyncio.run(_deploy_flow(flow_id))


async def _deploy_flow(flow_id: str) -> None:
    from flowstudio.services.deploy import DeployEngine
    from flowstudio.services.persistence import PersistenceGateway
    from flowstudio.storage import close_db

    console.print(f"[yellow]Deploying flow {flow_id}...[/yellow]")
    try:
        result = await DeployEngine(PersistenceGateway()).deploy(flow_id)
    except FlowStudioError as e:
        console.print("[red]Deployment failed; the draft is unchanged.[/red]")
        _fail(e)
    finally:
        await close_db()

    console.print(
        f"[green]Deployed v{result.flow.version} as {result.flow.id} ({len(result.steps)} steps)[/green]"
    )


def archive(flow_id: Annotated[str, typer.Argument(help="Flow ID to archive")]) -> None:
    """Archive a flow. Archived flows can no longer be edited or served."""
    asyncio.run(_archive_flow(flow_id))


async def _archive_flow(flow_id: str) -> None:
    from flowstudio.services.persistence import PersistenceGateway
    from flowstudio.storage import close_db

    try:
        record = await PersistenceGateway().archive_flow(flow_id)
    except FlowStudioError as e:
        _fail(e)
    finally:
        await close_db()

    console.print(f"[green]Archived flow {record.id} (v{record.version})[/green]")
