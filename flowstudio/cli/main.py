"""CLI entry point and base commands.

Provides the main CLI application with commands for:
- serve: Run the API server
- init-db: Create the database schema
- flows, create, show, deploy, archive: Manage onboarding flows
"""

import asyncio
from typing import Annotated

import typer
from rich.panel import Panel

from flowstudio import __version__
from flowstudio.cli.commands import flows as flow_commands
from flowstudio.cli.utils import console
from flowstudio.logging_config import configure_logging
from flowstudio.settings import get_settings

app = typer.Typer(
    name="flowstudio",
    help="Author, version and deploy onboarding flows",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def main() -> None:
    """Configure logging before any command runs."""
    configure_logging(get_settings().log_level)


@app.command()
def serve(
    host: Annotated[
        str,
        typer.Option("--host", "-h", help="Host to bind to"),
    ] = "0.0.0.0",  # noqa: S104
    port: Annotated[
        int,
        typer.Option("--port", "-p", help="Port to bind to"),
    ] = 8000,
    reload: Annotated[
        bool,
        typer.Option("--reload", "-r", help="Enable auto-reload for development"),
    ] = False,
    workers: Annotated[
        int,
        typer.Option("--workers", "-w", help="Number of worker processes"),
    ] = 1,
) -> None:
    """Start the Flow Studio API server.

    Runs the FastAPI application with uvicorn.
    """
    import uvicorn

    console.print(
        Panel(
            f"[bold green]Starting Flow Studio API Server[/bold green]\n"
            f"Host: {host}\n"
            f"Port: {port}\n"
            f"Workers: {workers}\n"
            f"Reload: {reload}",
            title="Flow Studio",
            border_style="green",
        )
    )

    uvicorn.run(
        "flowstudio.api.main:get_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=workers if not reload else 1,
        log_level=get_settings().log_level.lower(),
    )


@app.command(name="init-db")
def init_db() -> None:
    """Create all tables in the configured database.

    Use alembic migrations for managed environments; this is for local setups.
    """
    asyncio.run(_init_db())


async def _init_db() -> None:
    from flowstudio.storage import close_db, create_schema

    settings = get_settings()
    try:
        await create_schema()
    finally:
        await close_db()
    console.print(f"[green]Schema ready on {settings.database_url.split('@')[-1]}[/green]")


app.command(name="flows")(flow_commands.flows)
app.command()(flow_commands.create)
app.command()(flow_commands.show)
app.command()(flow_commands.deploy)
app.command()(flow_commands.archive)


@app.command()
def version() -> None:
    """Show Flow Studio version information."""
    console.print(
        Panel(
            f"[bold]Flow Studio[/bold] v{__version__}\n"
            "Onboarding flow authoring and deployment",
            title="Version",
            border_style="blue",
        )
    )


# Entry point for: python -m flowstudio.cli.main
if __name__ == "__main__":
    app()
