"""Step navigation state machine for the onboarding wizard."""

from __future__ import annotations

import logging
from typing import Callable

from onboardflow.core.types import Classification, StepStatus
from onboardflow.wizard.answers import RESET, AnswerChange, AnswerSet
from onboardflow.wizard.errors import ErrorLocator
from onboardflow.wizard.models import AdvanceResult, FlowDefinition, StepDefinition, ValidationError
from onboardflow.wizard.readiness import can_advance, validate_step
from onboardflow.wizard.rules import ValidationContext, validate_field

logger = logging.getLogger(__name__)

ValidationErrorCallback = Callable[[list[ValidationError], int], None]
NavigateCallback = Callable[[int], None]


class StepNavigator:
    """Owns the current step of one wizard session.

    ``current_step`` is always within ``1..N``. Step status is derived on
    demand from the current step and the errors recorded for each step; it
    is never stored.
    """

    def __init__(
        self,
        flow: FlowDefinition,
        answers: AnswerSet,
        classification: Classification | None = None,
        locator: ErrorLocator | None = None,
        on_validation_error: ValidationErrorCallback | None = None,
        on_navigate: NavigateCallback | None = None,
        initial_step: int = 1,
    ) -> None:
        if flow.step_count == 0:
            raise ValueError(f"Flow {flow.variant!r} has no steps")
        self._flow = flow
        self._answers = answers
        self.classification = classification
        self._locator = locator or ErrorLocator(flow)
        self._on_validation_error = on_validation_error
        self._on_navigate = on_navigate
        self._current = self._clamp(initial_step)
        self._errors: dict[int, list[ValidationError]] = {}
        self._unsubscribe: Callable[[], None] | None = answers.subscribe(self._on_answers_changed)

    # -- state --

    @property
    def flow(self) -> FlowDefinition:
        return self._flow

    @property
    def step_count(self) -> int:
        return self._flow.step_count

    @property
    def current_step(self) -> int:
        return self._current

    @property
    def current(self) -> StepDefinition:
        return self._flow.step(self._current)

    @property
    def context(self) -> ValidationContext:
        return ValidationContext.from_answers(
            self._answers, classification=self.classification, policy=self._flow.policy
        )

    def errors_for(self, step_number: int) -> list[ValidationError]:
        return list(self._errors.get(step_number, []))

    def status(self, step_number: int) -> StepStatus:
        if step_number < self._current:
            return StepStatus.COMPLETED
        if step_number == self._current:
            return StepStatus.ERROR if self._errors.get(step_number) else StepStatus.ACTIVE
        return StepStatus.UPCOMING

    def statuses(self) -> dict[int, StepStatus]:
        return {n: self.status(n) for n in range(1, self.step_count + 1)}

    # -- transitions --

    def advance(self) -> AdvanceResult:
        """Validate the current step and move forward if it is ready.

        Field validation and the step's readiness check must both pass. At
        the last step this is a no-op; submission is a separate action.
        """
        if self._current >= self.step_count:
            logger.debug("advance() at final step %d; nothing to do", self._current)
            return AdvanceResult(advanced=False, current_step=self._current)

        step = self.current
        context = self.context
        errors = self._locator.order(validate_step(step.id, self._answers, context))
        ready = can_advance(step.id, self._answers, context)

        if not errors and ready:
            self._errors.pop(self._current, None)
            previous = self._current
            self._current += 1
            logger.debug("Advanced %s: step %d -> %d", self._flow.variant, previous, self._current)
            self._notify_navigate()
            return AdvanceResult(advanced=True, current_step=self._current)

        if not errors:
            logger.warning(
                "Step %r passed field validation but failed its readiness check", step.id
            )
        self._errors[self._current] = errors
        feedback = self._locator.format(errors)
        logger.info(
            "Advance blocked at step %d (%s): %d error(s)", self._current, step.id, len(errors)
        )
        if self._on_validation_error is not None:
            self._on_validation_error(list(errors), self._current)
        return AdvanceResult(
            advanced=False, current_step=self._current, errors=errors, feedback=feedback
        )

    def retreat(self) -> bool:
        """Go back one step. Never validates."""
        if self._current <= 1:
            return False
        self._current -= 1
        logger.debug("Retreated %s to step %d", self._flow.variant, self._current)
        self._notify_navigate()
        return True

    def go_to_step(self, step_number: int) -> None:
        """Jump to ``step_number`` without validating.

        Raises:
            ValueError: If ``step_number`` is outside ``1..N``.
        """
        if not 1 <= step_number <= self.step_count:
            raise ValueError(
                f"Step {step_number} is outside 1..{self.step_count} for flow {self._flow.variant!r}"
            )
        if step_number == self._current:
            return
        logger.debug("Jumped %s: step %d -> %d", self._flow.variant, self._current, step_number)
        self._current = step_number
        self._notify_navigate()

    def record_errors(self, step_number: int, errors: list[ValidationError]) -> None:
        """Attach externally reported errors (e.g. a rejected submission) to a step."""
        if errors:
            self._errors[step_number] = list(errors)
        else:
            self._errors.pop(step_number, None)

    def restore_to(self, step_number: int) -> int:
        """Set the step from a restored snapshot, clamped into ``1..N``."""
        clamped = self._clamp(step_number)
        if clamped != step_number:
            logger.info(
                "Restored step %d is outside 1..%d; clamped to %d",
                step_number, self.step_count, clamped,
            )
        self._current = clamped
        return clamped

    def reset(self, step_number: int = 1) -> None:
        self._errors.clear()
        self._current = self._clamp(step_number)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # -- internals --

    def _clamp(self, step_number: int) -> int:
        return max(1, min(int(step_number), self.step_count))

    def _notify_navigate(self) -> None:
        if self._on_navigate is not None:
            self._on_navigate(self._current)

    def _on_answers_changed(self, change: AnswerChange) -> None:
        if change.kind == RESET:
            self._errors.clear()
            return
        if not self._errors:
            return
        # A toggle can settle a sibling's error, so all outstanding errors are re-checked.
        context = self.context
        for step_number in list(self._errors):
            remaining: list[ValidationError] = []
            for error in self._errors[step_number]:
                remaining.extend(validate_field(error.field_path, self._answers, context))
            if remaining:
                self._errors[step_number] = remaining
            else:
                del self._errors[step_number]
