"""Durable remote tier for wizard snapshots."""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from onboardflow.repositories import resolve
from onboardflow.repositories.models import parse_step_key
from onboardflow.repositories.protocols import ProgressRepository
from onboardflow.wizard.models import RemoteProgress

logger = logging.getLogger(__name__)


@runtime_checkable
class RemoteProgressStore(Protocol):
    """Remote save/restore keyed by identity (the user's email).

    ``save`` reports success as a bool. ``restore_by_identity`` returns
    ``None`` when nothing is stored. Both may raise on transport failure;
    callers treat any exception as "remote unavailable".
    """

    async def save(
        self,
        step_key: str,
        payload: dict[str, Any],
        identity: str,
        full_answers: dict[str, Any],
    ) -> bool: ...

    async def restore_by_identity(self, identity: str) -> RemoteProgress | None: ...


def progress_from_reply(data: dict[str, Any] | None) -> RemoteProgress | None:
    """Interpret a ``get-data`` reply body (its ``data`` member).

    Prefers the ``savedFormData`` shape and falls back to the older
    ``onboardingData`` shape, which may carry only a per-step map.
    """
    if not data:
        return None
    saved = data.get("savedFormData")
    if saved:
        return RemoteProgress(
            current_step=parse_step_key(data.get("onboardingStep")),
            form_data=saved,
        )
    legacy = data.get("onboardingData") or data.get("onboardingProgress")
    if isinstance(legacy, dict) and (legacy.get("formData") or legacy.get("stepData")):
        return RemoteProgress(
            current_step=parse_step_key(legacy.get("currentStep")),
            form_data=legacy.get("formData") or None,
            step_data=legacy.get("stepData") or None,
        )
    return None


class RepositoryRemoteStore:
    """Remote tier backed directly by a ``ProgressRepository``.

    Used in-process by the progress service and in tests; the browser-facing
    equivalent is ``HttpRemoteStore``.
    """

    def __init__(self, repository: ProgressRepository, user_id: str | None = None) -> None:
        self._repo = repository
        self._user_id = user_id

    async def save(
        self,
        step_key: str,
        payload: dict[str, Any],
        identity: str,
        full_answers: dict[str, Any],
    ) -> bool:
        await resolve(
            self._repo.save_step(
                identity, step_key, data=payload, form_data=full_answers, user_id=self._user_id
            )
        )
        return True

    async def restore_by_identity(self, identity: str) -> RemoteProgress | None:
        record = await resolve(self._repo.get(identity))
        if record is None:
            return None
        if not record.form_data and not record.step_data:
            return None
        return RemoteProgress(
            current_step=record.current_step,
            form_data=record.form_data or None,
            step_data=record.step_data or None,
        )
