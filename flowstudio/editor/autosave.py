"""Autosave coordinator.

Decides when the edit buffer's steps reach the persistence gateway.

Two triggers run side by side:

- manual: ``save()`` always issues a persistence call and cancels any
  pending debounce timer;
- debounced: every buffer mutation (re)starts a timer; when it fires and
  the buffer is still dirty, one save is issued.

At most one save per buffer is in flight. Mutations that arrive while a
save is running never cancel it; they mark a single follow-up save that
runs once the current one resolves, however many mutations arrived. A
failed save leaves the buffer dirty and is not retried automatically.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from flowstudio.editor.buffer import EditBuffer
from flowstudio.exceptions import FlowStudioError, ValidationError

if TYPE_CHECKING:
    from flowstudio.services.persistence import PersistenceGateway

logger = logging.getLogger(__name__)

_DEFAULT_DEBOUNCE_SECONDS = 5.0

ErrorCallback = Callable[[FlowStudioError], None]


class AutosaveCoordinator:
    """Debounced, coalescing save scheduler for one edit buffer.

    Must be used from inside a running event loop: mutation notifications
    schedule timers and tasks on it.

    Attributes:
        last_error: Most recent save failure (cleared by the next success)
        save_count: Number of persistence calls issued
    """

    def __init__(
        self,
        buffer: EditBuffer,
        gateway: PersistenceGateway,
        *,
        debounce_seconds: float = _DEFAULT_DEBOUNCE_SECONDS,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self.buffer = buffer
        self.gateway = gateway
        self.debounce_seconds = debounce_seconds
        self.on_error = on_error
        self.last_error: FlowStudioError | None = None
        self.save_count = 0
        self._timer: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[None] | None = None
        self._follow_up = False
        self._debounced_tasks: set[asyncio.Task[None]] = set()
        buffer.subscribe(self.notify_mutation)

    # ─── Observable state ─────────────────────────────────────────────────

    @property
    def is_saving(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    # ─── Triggers ─────────────────────────────────────────────────────────

    def notify_mutation(self) -> None:
        """React to a buffer change.

        While a save is in flight the change only marks a follow-up;
        otherwise the debounce timer is restarted.
        """
        if self.is_saving:
            self._follow_up = True
            return
        self._restart_timer()

    async def save(self) -> None:
        """Persist the buffer now.

        Cancels a pending debounce timer. If a save is already in flight,
        a follow-up is queued behind it and this call waits for both.

        Raises:
            ValidationError: If no flow is loaded.
            FlowStudioError: Whatever the gateway raised (buffer stays dirty).
        """
        self._cancel_timer()
        task = self._request_save()
        # Shielded: a cancelled caller must not cancel the store write
        await asyncio.shield(task)

    async def flush(self) -> None:
        """Wait until nothing is pending: in-flight saves resolve, and a
        dirty buffer is saved once more."""
        self._cancel_timer()
        task = self._task
        if task is not None and not task.done():
            await asyncio.shield(task)
        if self.buffer.dirty:
            await self.save()

    async def close(self) -> None:
        """Stop timers and wait for in-flight work; no new save is issued."""
        self._cancel_timer()
        self._follow_up = False
        if self._task is not None and not self._task.done():
            with contextlib.suppress(FlowStudioError):
                await asyncio.shield(self._task)
        for task in list(self._debounced_tasks):
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self.buffer.unsubscribe(self.notify_mutation)

    # ─── Internals ────────────────────────────────────────────────────────

    def _restart_timer(self) -> None:
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_seconds, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        if not self.buffer.dirty:
            return
        task = asyncio.create_task(self._debounced_save())
        self._debounced_tasks.add(task)
        task.add_done_callback(self._debounced_tasks.discard)

    async def _debounced_save(self) -> None:
        try:
            await asyncio.shield(self._request_save())
        except FlowStudioError:
            # Already recorded in last_error and reported by _drain
            pass

    def _request_save(self) -> asyncio.Task[None]:
        if self.buffer.flow_id is None:
            raise ValidationError("No flow loaded; nothing to save")
        task = self._task
        if task is not None and not task.done():
            self._follow_up = True
            return task
        self._follow_up = False
        self._task = asyncio.create_task(self._drain())
        return self._task

    async def _drain(self) -> None:
        """Run saves back to back until no follow-up is pending."""
        while True:
            self._follow_up = False
            try:
                await self._persist_once()
            except FlowStudioError as e:
                self._report(e)
                if self._follow_up:
                    # The edit made during the failed call gets its own debounce cycle
                    self._follow_up = False
                    self._restart_timer()
                raise
            if not self._follow_up:
                return
            logger.debug("Buffer changed during save; issuing follow-up save")

    async def _persist_once(self) -> None:
        flow_id = self.buffer.flow_id
        if flow_id is None:
            raise ValidationError("Flow was unloaded before the pending save ran")
        revision = self.buffer.revision
        steps = self.buffer.get_steps()
        self.save_count += 1
        logger.debug("Saving %d steps for flow %s (revision %d)", len(steps), flow_id, revision)

        persisted = await self.gateway.replace_steps(flow_id, steps)

        if self.buffer.flow_id != flow_id:
            return
        self.buffer.adopt_ids(
            {sent.id: stored.id for sent, stored in zip(steps, persisted, strict=True)}
        )
        clean = self.buffer.mark_clean(revision)
        self.last_error = None
        logger.info(
            "Saved flow %s (%d steps)%s",
            flow_id,
            len(persisted),
            "" if clean else "; newer edits pending",
        )

    def _report(self, error: FlowStudioError) -> None:
        self.last_error = error
        logger.warning(
            "Save failed for flow %s: %s (correlation_id=%s)",
            self.buffer.flow_id,
            error,
            error.correlation_id,
        )
        if self.on_error is not None:
            self.on_error(error)
