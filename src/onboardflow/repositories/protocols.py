"""Protocol definition for progress repositories.

The protocol mirrors the public methods of ``InMemoryProgressRepository``
exactly, so both the sync in-memory store and the async SQL repository
satisfy the same interface (await results through ``resolve``).
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from onboardflow.repositories.models import ProgressRecord


@runtime_checkable
class ProgressRepository(Protocol):
    """Protocol for onboarding progress storage keyed by email."""

    def get(self, email: str) -> ProgressRecord | None: ...

    def save_step(
        self,
        email: str,
        step: str,
        data: dict[str, Any] | None = None,
        form_data: dict[str, Any] | None = None,
        user_id: str | None = None,
    ) -> ProgressRecord | None: ...

    def delete(self, email: str) -> bool: ...
