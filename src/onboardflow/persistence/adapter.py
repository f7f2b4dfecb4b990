"""Persistence adapter: debounced two-tier auto-save and one-shot restore.

Local writes happen synchronously when the debounce timer fires; the remote
save runs as a background task and never blocks navigation. Restore prefers
the remote tier, falls back to the local progress record, then to the
generic form-data record, and otherwise starts fresh at step 1.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Protocol

from onboardflow.core.config import PersistenceConfig
from onboardflow.core.types import SnapshotSource
from onboardflow.persistence.local import LocalStorage
from onboardflow.persistence.remote import RemoteProgressStore
from onboardflow.repositories.models import step_key
from onboardflow.wizard.answers import CHANGE, AnswerChange, AnswerSet, merge_step_data, normalize_restored
from onboardflow.wizard.models import PersistedSnapshot, RestoreResult

logger = logging.getLogger(__name__)

LOCAL_WARNING = (
    "Your progress can't be saved on this device right now. "
    "You can keep going, but answers may be lost if you reload."
)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]


def call_later(delay: float, callback: Callable[[], None]) -> TimerHandle:
    """Default scheduler: the running event loop's ``call_later``."""
    return asyncio.get_running_loop().call_later(delay, callback)


class PersistenceAdapter:
    """Keeps one wizard session resumable.

    All state (restore guard, debounce timer, local-tier health) belongs to
    the instance, so concurrent sessions never share it.
    """

    def __init__(
        self,
        flow_variant: str,
        step_count: int,
        local: LocalStorage | None = None,
        remote: RemoteProgressStore | None = None,
        identity: str | None = None,
        config: PersistenceConfig | None = None,
        scheduler: Scheduler | None = None,
        on_warning: Callable[[str], None] | None = None,
    ) -> None:
        if step_count < 1:
            raise ValueError("step_count must be at least 1")
        self.config = config or PersistenceConfig()
        self.flow_variant = flow_variant
        self.step_count = step_count
        self.identity = identity
        self._local = local
        self._remote = remote
        self._scheduler = scheduler or call_later
        self._on_warning = on_warning

        self._answers: AnswerSet | None = None
        self._current_step: Callable[[], int] = lambda: 1
        self._unsubscribe: Callable[[], None] | None = None
        self._timer: TimerHandle | None = None
        self._remote_tasks: set[asyncio.Task[None]] = set()
        self._remote_lock = asyncio.Lock()
        self._restore_task: asyncio.Task[RestoreResult] | None = None
        self._local_disabled = False
        self._warned = False

    # -- keys --

    @property
    def progress_key(self) -> str:
        return f"{self.config.progress_key_prefix}{self.flow_variant}"

    @property
    def form_data_key(self) -> str:
        return self.config.form_data_key

    @property
    def local_enabled(self) -> bool:
        return self._local is not None and not self._local_disabled

    @property
    def save_pending(self) -> bool:
        return self._timer is not None

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    # -- auto-save --

    def attach(self, answers: AnswerSet, current_step: Callable[[], int]) -> None:
        """Start auto-saving ``answers``; ``current_step`` is read at save time."""
        self.detach()
        self._answers = answers
        self._current_step = current_step
        self._unsubscribe = answers.subscribe(self._on_change)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.cancel_pending()

    def cancel_pending(self) -> None:
        """Drop a scheduled save without writing it."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_change(self, change: AnswerChange) -> None:
        if change.kind != CHANGE:
            return
        self.cancel_pending()
        self._timer = self._scheduler(self.config.debounce_seconds, self._fire)

    def _fire(self) -> None:
        self._timer = None
        self.save_now()

    def snapshot(self) -> PersistedSnapshot | None:
        if self._answers is None:
            return None
        return PersistedSnapshot(
            current_step=self._current_step(),
            answers=self._answers.to_dict(),
            flow_variant=self.flow_variant,
        )

    def save_now(self) -> PersistedSnapshot | None:
        """Write the latest state to local storage and start the remote save."""
        snapshot = self.snapshot()
        if snapshot is None:
            return None
        self._write_local(snapshot)
        self._start_remote_save(snapshot)
        return snapshot

    async def flush(self) -> None:
        """Write a pending save immediately and wait for in-flight remote saves."""
        if self._timer is not None:
            self.cancel_pending()
            self.save_now()
        await self._drain_remote()

    # -- local tier --

    def _degrade_local(self, action: str, exc: Exception) -> None:
        logger.warning("Local progress %s failed for %s: %s", action, self.flow_variant, exc)
        self._local_disabled = True
        if not self._warned:
            self._warned = True
            if self._on_warning is not None:
                self._on_warning(LOCAL_WARNING)

    def _write_local(self, snapshot: PersistedSnapshot) -> None:
        if not self.local_enabled:
            return
        try:
            self._local.set_item(self.progress_key, snapshot.to_record())
            self._local.set_item(self.form_data_key, json.dumps(snapshot.answers))
        except (OSError, ValueError, TypeError) as exc:
            self._degrade_local("write", exc)
            return
        logger.debug("Saved %s locally at step %d", self.flow_variant, snapshot.current_step)

    def _read_local(self) -> RestoreResult | None:
        if not self.local_enabled:
            return None
        try:
            raw = self._local.get_item(self.progress_key)
            generic = self._local.get_item(self.form_data_key)
        except (OSError, ValueError) as exc:
            self._degrade_local("read", exc)
            return None

        if raw:
            try:
                snapshot = PersistedSnapshot.model_validate_json(raw)
            except ValueError as exc:
                logger.warning("Ignoring unreadable progress record %s: %s", self.progress_key, exc)
            else:
                if snapshot.answers:
                    return self._result(snapshot.answers, snapshot.current_step, SnapshotSource.LOCAL)

        if generic:
            try:
                answers = json.loads(generic)
            except ValueError as exc:
                logger.warning("Ignoring unreadable form data record %s: %s", self.form_data_key, exc)
                return None
            if isinstance(answers, dict) and answers:
                return self._result(answers, 1, SnapshotSource.LOCAL)
        return None

    # -- remote tier --

    def _start_remote_save(self, snapshot: PersistedSnapshot) -> None:
        if self._remote is None or not self.identity:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; skipped remote save for %s", self.flow_variant)
            return
        task = loop.create_task(self._save_remote(snapshot))
        self._remote_tasks.add(task)
        task.add_done_callback(self._remote_tasks.discard)

    async def _save_remote(self, snapshot: PersistedSnapshot) -> None:
        payload: dict[str, Any] = {"step": snapshot.current_step, "flowType": self.flow_variant}
        async with self._remote_lock:
            try:
                ok = await self._remote.save(
                    step_key(snapshot.current_step), payload, self.identity, snapshot.answers
                )
            except Exception as exc:
                logger.warning("Remote progress save failed for %s: %s", self.identity, exc)
                return
        if not ok:
            logger.warning("Remote progress store rejected save for %s", self.identity)

    async def _drain_remote(self) -> None:
        if self._remote_tasks:
            await asyncio.gather(*list(self._remote_tasks), return_exceptions=True)

    # -- restore --

    async def restore(self) -> RestoreResult:
        """Restore once per adapter; concurrent and repeat callers share the result."""
        if self._restore_task is None:
            self._restore_task = asyncio.ensure_future(self._restore())
        return await asyncio.shield(self._restore_task)

    @property
    def restored(self) -> bool:
        return self._restore_task is not None and self._restore_task.done()

    async def _restore(self) -> RestoreResult:
        if self._remote is not None and self.identity:
            try:
                progress = await self._remote.restore_by_identity(self.identity)
            except Exception as exc:
                logger.warning("Remote restore failed for %s: %s", self.identity, exc)
                progress = None
            if progress is not None:
                answers = progress.form_data or merge_step_data(progress.step_data or {})
                if answers:
                    return self._result(answers, progress.current_step or 1, SnapshotSource.REMOTE)

        local = self._read_local()
        if local is not None:
            return local

        logger.info("No saved progress for %s; starting fresh", self.flow_variant)
        return RestoreResult()

    def _result(self, answers: dict[str, Any], step: int, source: SnapshotSource) -> RestoreResult:
        clamped = max(1, min(int(step), self.step_count))
        if clamped != step:
            logger.info("Saved step %d clamped to %d (flow has %d steps)", step, clamped, self.step_count)
        logger.info("Restored %s progress from %s at step %d", self.flow_variant, source, clamped)
        return RestoreResult(answers=normalize_restored(answers), current_step=clamped, source=source)

    # -- clear --

    async def clear(self) -> None:
        """Delete both snapshots. Cancels a pending save first so it cannot resurrect them."""
        self.cancel_pending()
        await self._drain_remote()

        if self.local_enabled:
            try:
                self._local.remove_item(self.progress_key)
                self._local.remove_item(self.form_data_key)
            except (OSError, ValueError) as exc:
                self._degrade_local("clear", exc)

        if self._remote is not None and self.identity:
            async with self._remote_lock:
                try:
                    await self._remote.save(step_key(1), {}, self.identity, {})
                except Exception as exc:
                    logger.warning("Remote progress clear failed for %s: %s", self.identity, exc)
        logger.info("Cleared saved progress for %s", self.flow_variant)
