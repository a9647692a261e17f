"""Shared CLI helpers."""

from rich.console import Console

console = Console()

STATUS_COLORS = {
    "draft": "yellow",
    "active": "green",
    "archived": "dim",
}


def status_markup(status: str) -> str:
    color = STATUS_COLORS.get(status, "white")
    return f"[{color}]{status}[/{color}]"
