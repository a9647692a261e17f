"""Flow editor session.

The object a UI drives. It owns one edit buffer, its history and its
autosave coordinator, and talks to the store only through the persistence
gateway and the deploy engine. Nothing here is module-global: every open
editor gets its own session.

Usage:
    session = FlowEditorSession(PersistenceGateway())
    await session.switch_flow(flow_id)
    welcome = session.insert_step("welcome", 0)
    session.set_step_config(welcome.id, "questionScreen.question", "hi?")
    await session.save()
    result = await session.deploy()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from flowstudio.editor.autosave import AutosaveCoordinator
from flowstudio.editor.buffer import EditBuffer
from flowstudio.editor.config_tree import ConfigPath
from flowstudio.editor.history import HistoryStack
from flowstudio.editor.interfaces import TemplateCatalog
from flowstudio.exceptions import FlowStudioError, ValidationError
from flowstudio.schemas import DeployResult, FlowRecord, Step
from flowstudio.services.catalog import builtin_catalog
from flowstudio.services.deploy import DeployEngine
from flowstudio.services.persistence import PersistenceGateway
from flowstudio.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class FlowEditorSession:
    """Editing surface for one flow at a time.

    Args:
        gateway: Persistence gateway shared with the deploy engine
        catalog: Template catalog for new steps (built-ins by default)
        settings: Overrides debounce and history limits
        deploy_engine: Engine to deploy with (built from ``gateway`` by default)
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        *,
        catalog: TemplateCatalog | None = None,
        settings: Settings | None = None,
        deploy_engine: DeployEngine | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.gateway = gateway
        self.buffer = EditBuffer(
            history=HistoryStack(max_entries=settings.history_max_entries),
            catalog=catalog or builtin_catalog(),
        )
        self.autosave = AutosaveCoordinator(
            self.buffer,
            gateway,
            debounce_seconds=settings.autosave_debounce_seconds,
            on_error=self._on_save_error,
        )
        self.deploy_engine = deploy_engine or DeployEngine(gateway)
        self.last_deploy: DeployResult | None = None
        self._deploy_lock = asyncio.Lock()
        self._deploy_error: FlowStudioError | None = None
        self._latest_failure = "save"

    # ─── Observable state ─────────────────────────────────────────────────

    @property
    def flow(self) -> FlowRecord | None:
        return self.buffer.flow

    @property
    def dirty(self) -> bool:
        return self.buffer.dirty

    @property
    def can_undo(self) -> bool:
        return self.buffer.can_undo

    @property
    def can_redo(self) -> bool:
        return self.buffer.can_redo

    @property
    def is_saving(self) -> bool:
        return self.autosave.is_saving

    @property
    def is_deploying(self) -> bool:
        return self._deploy_lock.locked()

    @property
    def last_error(self) -> FlowStudioError | None:
        """Most recent save or deploy failure; cleared when that operation next succeeds."""
        save_error = self.autosave.last_error
        if self._deploy_error is not None and (save_error is None or self._latest_failure == "deploy"):
            return self._deploy_error
        return save_error

    # ─── Queries ──────────────────────────────────────────────────────────

    def get_steps(self) -> list[Step]:
        return self.buffer.get_steps()

    def get_step(self, step_id: str) -> Step:
        return self.buffer.get_step(step_id)

    # ─── Mutations ────────────────────────────────────────────────────────

    def insert_step(self, template_id: str, at_index: int | None = None) -> Step:
        """Insert a step seeded from the catalog; appends when ``at_index`` is None."""
        self._require_flow()
        return self.buffer.insert_step(template_id, at_index)

    def remove_step(self, step_id: str) -> None:
        self._require_flow()
        self.buffer.remove_step(step_id)

    def move_step(self, step_id: str, new_index: int) -> bool:
        self._require_flow()
        return self.buffer.move_step(step_id, new_index)

    def move_step_up(self, step_id: str) -> bool:
        self._require_flow()
        return self.buffer.move_step_up(step_id)

    def move_step_down(self, step_id: str) -> bool:
        self._require_flow()
        return self.buffer.move_step_down(step_id)

    def duplicate_step(self, step_id: str) -> Step:
        self._require_flow()
        return self.buffer.duplicate_step(step_id)

    def set_step_config(self, step_id: str, path: str | ConfigPath, value: Any) -> Step:
        self._require_flow()
        return self.buffer.set_step_config(step_id, path, value)

    def undo(self) -> bool:
        return self.buffer.undo()

    def redo(self) -> bool:
        return self.buffer.redo()

    # ─── Persistence ──────────────────────────────────────────────────────

    async def save(self) -> None:
        """Save now. Raises whatever the gateway raised; the buffer stays dirty on failure."""
        await self.autosave.save()

    async def deploy(self) -> DeployResult:
        """Deploy the current flow.

        Pending edits are saved first, so the deployed version is exactly
        what the buffer shows. The buffer keeps editing the draft afterwards.

        Raises:
            ValidationError: If no flow is loaded.
            ConflictError: If the loaded flow is not a draft.
            TransientError: If the pre-deploy save or the deploy fails.
        """
        flow = self._require_flow()
        async with self._deploy_lock:
            try:
                await self.autosave.flush()
                result = await self.deploy_engine.deploy(flow.id)
            except FlowStudioError as e:
                self._deploy_error = e
                self._latest_failure = "deploy"
                logger.error("Deploy of flow %s failed: %s (correlation_id=%s)", flow.id, e, e.correlation_id)
                raise
            self._deploy_error = None
            self.last_deploy = result
            logger.info(
                "Deployed flow %s as %s (v%s)",
                flow.id,
                result.flow.id,
                result.flow.version,
            )
            return result

    async def switch_flow(self, flow_id: str) -> FlowRecord:
        """Load another flow into the buffer.

        Pending saves of the current flow are flushed first; if that fails
        the current flow stays loaded and the error propagates.

        Raises:
            FlowNotFoundError: If ``flow_id`` does not exist.
        """
        if self.buffer.flow_id is not None:
            await self.autosave.flush()
        flow = await self.gateway.get_flow(flow_id)
        steps = await self.gateway.load_steps(flow_id)
        self.buffer.load(flow, steps)
        self._deploy_error = None
        self.autosave.last_error = None
        logger.info("Editing flow %s (%s, v%s, %d steps)", flow.id, flow.status, flow.version, len(steps))
        return flow

    async def close(self) -> None:
        """Flush pending edits and stop the autosave coordinator."""
        try:
            if self.buffer.flow_id is not None and self.buffer.dirty:
                await self.autosave.flush()
        finally:
            await self.autosave.close()

    def _on_save_error(self, error: FlowStudioError) -> None:
        self._latest_failure = "save"

    def _require_flow(self) -> FlowRecord:
        if self.buffer.flow is None:
            raise ValidationError("No flow loaded; call switch_flow first")
        return self.buffer.flow
