"""Server-side record of one user's onboarding progress."""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


def parse_step_key(step: str | int | None) -> int:
    """``"step_3"`` -> 3. Anything unparseable is step 1."""
    if isinstance(step, bool):
        return 1
    if isinstance(step, int):
        return step if step >= 1 else 1
    if not step:
        return 1
    text = str(step).strip().removeprefix("step_")
    try:
        number = int(text)
    except ValueError:
        return 1
    return number if number >= 1 else 1


def step_key(step_number: int) -> str:
    return f"step_{step_number}"


class ProgressRecord(BaseModel):
    """Answers and position saved for one identity (the user's email)."""

    email: str
    user_id: str | None = None
    current_step: int = 1
    form_data: dict[str, Any] = Field(default_factory=dict)
    step_data: dict[str, dict[str, Any]] = Field(default_factory=dict)
    flow_type: str | None = None
    last_saved: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_wire(self) -> dict[str, Any]:
        """The ``onboardingData`` shape returned by the progress service."""
        return {
            "currentStep": step_key(self.current_step),
            "formData": self.form_data,
            "stepData": self.step_data,
            "flowType": self.flow_type,
            "lastSaved": self.last_saved.isoformat(),
        }


def is_reset(data: dict[str, Any] | None, form_data: dict[str, Any] | None) -> bool:
    """An update with an empty payload and empty answers clears the record."""
    return not data and form_data is not None and not form_data


def apply_step(
    record: ProgressRecord | None,
    email: str,
    step: str,
    data: dict[str, Any] | None,
    form_data: dict[str, Any] | None,
    user_id: str | None = None,
) -> ProgressRecord:
    """Fold one ``update-step`` call into ``record``.

    ``form_data`` is the client's complete answer set and replaces the stored
    one; ``data`` is kept per step key.
    """
    now = datetime.now(timezone.utc)
    payload = copy.deepcopy(data or {})
    payload["completedAt"] = now.isoformat()
    if record is None:
        record = ProgressRecord(email=email)
    step_data = copy.deepcopy(record.step_data)
    step_data[step] = payload
    flow_type = payload.get("flowType") or record.flow_type
    return record.model_copy(
        update={
            "user_id": user_id or record.user_id,
            "current_step": parse_step_key(step),
            "step_data": step_data,
            "form_data": copy.deepcopy(form_data) if form_data is not None else record.form_data,
            "flow_type": flow_type,
            "last_saved": now,
        }
    )
