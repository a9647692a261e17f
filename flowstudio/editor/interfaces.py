"""Narrow interfaces to collaborators outside the editing core.

The template catalog seeds the config of brand-new steps; the renderer
turns a step's config into UI. The core never inspects rendered output.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from flowstudio.schemas import Template


@runtime_checkable
class TemplateCatalog(Protocol):
    """Source of step templates, keyed by template id."""

    def lookup(self, template_id: str) -> Template | None:
        """Return the template, or None when the id is unknown."""
        ...


InteractionCallback = Callable[[str, Any], None]


@runtime_checkable
class Renderer(Protocol):
    """Pure function from a step's type and config to UI output."""

    def render(self, step_type: str, config: dict[str, Any], on_interact: InteractionCallback) -> Any:
        ...
