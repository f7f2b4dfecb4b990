"""Shared models for the onboarding wizard."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from onboardflow.core.types import Classification, SnapshotSource


class FieldDefinition(BaseModel):
    """A field owned by a step, in declared order."""

    path: str
    label: str = ""

    @property
    def display_name(self) -> str:
        return self.label or self.path


class StepDefinition(BaseModel):
    """Definition of a single wizard step."""

    model_config = ConfigDict(frozen=True)

    id: str
    number: int
    title: str
    description: str = ""
    fields: tuple[FieldDefinition, ...] = ()

    @property
    def field_paths(self) -> list[str]:
        return [f.path for f in self.fields]


class FlowPolicy(BaseModel):
    """Classification-driven requirement policy attached to a flow."""

    mobile_required_classifications: frozenset[Classification] = frozenset(
        {Classification.WITH_GST, Classification.ENTERPRISE}
    )


class FlowDefinition(BaseModel):
    """Ordered step configuration for one flow variant, loaded from YAML."""

    variant: str
    title: str
    description: str = ""
    steps: list[StepDefinition] = Field(default_factory=list)
    policy: FlowPolicy = Field(default_factory=FlowPolicy)

    @property
    def step_count(self) -> int:
        return len(self.steps)

    def step(self, number: int) -> StepDefinition:
        """Return the step at 1-based position ``number``."""
        return self.steps[number - 1]

    def step_by_id(self, step_id: str) -> StepDefinition | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None


class ValidationError(BaseModel):
    """A single field-level validation failure."""

    field_path: str
    message: str


class FieldMapping(BaseModel):
    """Where a failing field lives and how to name it to the user."""

    field_path: str
    display_name: str
    step_number: int


class FormattedErrors(BaseModel):
    """Aggregate user-facing message plus navigation targets."""

    message: str
    fields: list[FieldMapping] = Field(default_factory=list)

    @property
    def target(self) -> FieldMapping | None:
        """The 'go to error' destination."""
        return self.fields[0] if self.fields else None


class AdvanceResult(BaseModel):
    """Outcome of a navigation ``advance()`` attempt."""

    advanced: bool
    current_step: int
    errors: list[ValidationError] = Field(default_factory=list)
    feedback: FormattedErrors | None = None


class PersistedSnapshot(BaseModel):
    """Complete copy of answers plus navigation position.

    Serialized with the camelCase keys the browser client and the progress
    service have always used.
    """

    model_config = ConfigDict(populate_by_name=True)

    current_step: int = Field(default=1, alias="currentStep")
    answers: dict[str, Any] = Field(default_factory=dict, alias="formData")
    flow_variant: str = Field(alias="flowType")
    saved_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="lastSaved"
    )

    def to_record(self) -> str:
        return self.model_dump_json(by_alias=True)


class RemoteProgress(BaseModel):
    """Reply of a remote restore: merged answers or a per-step map."""

    current_step: int | None = None
    form_data: dict[str, Any] | None = None
    step_data: dict[str, dict[str, Any]] | None = None


class RestoreResult(BaseModel):
    """Answers and step handed back to the session after restore."""

    answers: dict[str, Any] = Field(default_factory=dict)
    current_step: int = 1
    source: SnapshotSource = SnapshotSource.NONE

    @property
    def restored(self) -> bool:
        return self.source != SnapshotSource.NONE


class SubmissionResult(BaseModel):
    """Outcome of a final submission attempt."""

    success: bool
    feedback: FormattedErrors | None = None
    response: Any = None


class SubmissionRejected(Exception):
    """Raised by a submitter when the backend rejects specific fields."""

    def __init__(self, errors: list[ValidationError], message: str = "") -> None:
        super().__init__(message or "Submission rejected")
        self.errors = errors
        self.message = message
