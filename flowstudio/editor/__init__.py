"""Flow editing core: step operations, edit buffer, history and autosave."""

from flowstudio.editor.autosave import AutosaveCoordinator
from flowstudio.editor.buffer import EditBuffer
from flowstudio.editor.history import HistoryStack
from flowstudio.editor.session import FlowEditorSession

__all__ = [
    "AutosaveCoordinator",
    "EditBuffer",
    "FlowEditorSession",
    "HistoryStack",
]
