"""Collaborator protocols seen from the editing core."""

from flowstudio.editor.buffer import EditBuffer
from flowstudio.editor.interfaces import Renderer, TemplateCatalog
from flowstudio.services.catalog import builtin_catalog


class TextRenderer:
    """Renders a step as a line of text and records interactions."""

    def __init__(self):
        self.interactions = []

    def render(self, step_type, config, on_interact):
        on_interact("viewed", step_type)
        return f"[{step_type}] {config.get('title', '')}"


class TestRenderer:
    def test_structural_match(self):
        assert isinstance(TextRenderer(), Renderer)
        assert not isinstance(object(), Renderer)

    def test_renders_buffer_steps_without_mutating_them(self, draft_flow):
        buffer = EditBuffer(catalog=builtin_catalog())
        buffer.load(draft_flow, [])
        step = buffer.insert_step("welcome")
        renderer = TextRenderer()

        output = renderer.render(
            step.type,
            step.config,
            lambda event, value: renderer.interactions.append((event, value)),
        )

        assert output == "[welcome] Welcome"
        assert renderer.interactions == [("viewed", "welcome")]
        assert buffer.get_step(step.id).config == step.config


class TestTemplateCatalog:
    def test_plain_object_with_lookup_matches(self):
        class OneTemplate:
            def lookup(self, template_id):
                return None

        assert isinstance(OneTemplate(), TemplateCatalog)
