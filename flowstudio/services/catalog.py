"""Step template catalogs.

``StaticTemplateCatalog`` answers lookups from an in-memory mapping. The
persistence gateway builds one from the step types already stored
(``PersistenceGateway.list_templates``); ``builtin_catalog`` is the
fallback set used when the store has none yet.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable

from flowstudio.schemas import Template

BUILTIN_TEMPLATES: tuple[Template, ...] = (
    Template(
        id="welcome",
        type="welcome",
        name="Welcome",
        default_config={
            "title": "Welcome",
            "subtitle": "",
            "button": {"text": "Get started"},
        },
    ),
    Template(
        id="first-name",
        type="first-name",
        name="First Name",
        default_config={
            "questionScreen": {"question": "What should we call you?", "placeholder": "Your name"},
            "button": {"text": "Continue"},
        },
    ),
    Template(
        id="mood-selection",
        type="mood-selection",
        name="Mood Selection",
        default_config={
            "questionScreen": {"question": "How are you feeling today?"},
            "options": [],
        },
    ),
    Template(
        id="prayer-frequency",
        type="prayer-frequency",
        name="Frequency",
        default_config={
            "questionScreen": {"question": "How often would you like a reminder?"},
            "options": [],
        },
    ),
    Template(
        id="confirmation",
        type="confirmation",
        name="Confirmation",
        default_config={
            "title": "You're all set",
            "button": {"text": "Finish"},
        },
    ),
)

# Preset flows offered by "create from template": name, description, template ids
FLOW_PRESETS: dict[str, dict[str, object]] = {
    "quick-start": {
        "name": "Quick Start",
        "description": "Short path to the first session",
        "templates": ["welcome", "mood-selection", "confirmation"],
    },
    "personalized": {
        "name": "Personalized",
        "description": "Deep personalization for regular users",
        "templates": [
            "welcome",
            "first-name",
            "mood-selection",
            "prayer-frequency",
            "confirmation",
        ],
    },
    "minimal": {
        "name": "Minimal",
        "description": "Just the essentials",
        "templates": ["welcome", "confirmation"],
    },
}


class StaticTemplateCatalog:
    """Template catalog backed by a dict."""

    def __init__(self, templates: Iterable[Template] = ()) -> None:
        self._templates: dict[str, Template] = {}
        for template in templates:
            self.register(template)

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    def register(self, template: Template) -> None:
        """Add or replace a template."""
        self._templates[template.id] = template

    def lookup(self, template_id: str) -> Template | None:
        """Return a copy of the template so callers cannot alter its defaults."""
        template = self._templates.get(template_id)
        if template is None:
            return None
        return template.model_copy(update={"default_config": copy.deepcopy(template.default_config)})

    def list_templates(self) -> list[Template]:
        """All templates sorted by id."""
        return [self._templates[key] for key in sorted(self._templates)]

    def merged_with(self, other: StaticTemplateCatalog) -> StaticTemplateCatalog:
        """New catalog with ``other``'s entries overriding this one's."""
        return StaticTemplateCatalog([*self.list_templates(), *other.list_templates()])


def builtin_catalog() -> StaticTemplateCatalog:
    """Catalog of the built-in templates."""
    return StaticTemplateCatalog(BUILTIN_TEMPLATES)
