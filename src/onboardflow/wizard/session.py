"""Onboarding session: answers, navigation, feedback and persistence wired together."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Mapping

from onboardflow.core.config import Settings
from onboardflow.core.types import Classification, StepStatus
from onboardflow.persistence.adapter import PersistenceAdapter
from onboardflow.persistence.local import FileLocalStorage, LocalStorage
from onboardflow.persistence.remote import RemoteProgressStore
from onboardflow.wizard.answers import AnswerSet
from onboardflow.wizard.classification import determine_user_classification
from onboardflow.wizard.errors import ErrorLocator
from onboardflow.wizard.flows import get_flow
from onboardflow.wizard.models import (
    AdvanceResult,
    FlowDefinition,
    FormattedErrors,
    RestoreResult,
    SubmissionRejected,
    SubmissionResult,
    ValidationError,
)
from onboardflow.wizard.navigation import NavigateCallback, StepNavigator, ValidationErrorCallback
from onboardflow.wizard.readiness import can_submit, submission_errors

logger = logging.getLogger(__name__)

Submitter = Callable[[dict[str, Any]], Awaitable[Any]]

IN_PROGRESS_MESSAGE = "Your submission is already being processed."


class OnboardingSession:
    """One user's pass through a flow, from restore to submission or abandonment."""

    def __init__(
        self,
        flow: FlowDefinition,
        persistence: PersistenceAdapter | None = None,
        classification: Classification | None = None,
        on_validation_error: ValidationErrorCallback | None = None,
        on_navigate: NavigateCallback | None = None,
    ) -> None:
        self.flow = flow
        self.answers = AnswerSet()
        self.locator = ErrorLocator(flow)
        self.persistence = persistence
        self._on_validation_error = on_validation_error
        self._on_navigate = on_navigate
        self.navigator = StepNavigator(
            flow,
            self.answers,
            classification=classification,
            locator=self.locator,
            on_validation_error=on_validation_error,
            on_navigate=self._navigated,
        )
        self._restore_result: RestoreResult | None = None
        self._submitted = False
        self._submitting = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        variant: str | None = None,
        identity: str | None = None,
        local: LocalStorage | None = None,
        remote: RemoteProgressStore | None = None,
        classification: Classification | None = None,
        on_validation_error: ValidationErrorCallback | None = None,
        on_navigate: NavigateCallback | None = None,
        on_warning: Callable[[str], None] | None = None,
        profile: Mapping[str, Any] | None = None,
        params: Mapping[str, str] | None = None,
        mobile_verified: bool = False,
        din_verified: bool = False,
    ) -> OnboardingSession:
        """Build a session with file-backed local storage.

        Without an explicit ``classification`` one is derived from the
        identity, the user profile, request parameters and verification flags.
        """
        if classification is None:
            classification = determine_user_classification(
                email=identity,
                profile=profile,
                params=params,
                mobile_verified=mobile_verified,
                din_verified=din_verified,
            )
        flow = get_flow(variant or settings.flows.default_variant, settings.flows.flows_dir)
        persistence = PersistenceAdapter(
            flow_variant=flow.variant,
            step_count=flow.step_count,
            local=local if local is not None else FileLocalStorage(settings.persistence.local_dir),
            remote=remote,
            identity=identity,
            config=settings.persistence,
            on_warning=on_warning,
        )
        return cls(
            flow,
            persistence=persistence,
            classification=classification,
            on_validation_error=on_validation_error,
            on_navigate=on_navigate,
        )

    # -- lifecycle --

    async def start(self) -> RestoreResult:
        """Restore saved progress (once) and begin auto-saving."""
        if self._restore_result is not None:
            return self._restore_result
        result = RestoreResult()
        if self.persistence is not None:
            result = await self.persistence.restore()
        if result.restored:
            self.answers.load(result.answers)
            self.navigator.restore_to(result.current_step)
        if self.persistence is not None:
            self.persistence.attach(self.answers, lambda: self.navigator.current_step)
        self._restore_result = result
        return result

    async def close(self) -> None:
        """Abandon the session, writing any pending save first."""
        if self.persistence is not None:
            await self.persistence.flush()
            self.persistence.detach()
        self.navigator.close()

    async def reset(self) -> None:
        """Start over: forget answers, saved progress and position."""
        if self.persistence is not None:
            self.persistence.cancel_pending()
        self.answers.clear()
        self.navigator.reset()
        if self.persistence is not None:
            await self.persistence.clear()

    # -- answers --

    def set_answer(self, field_path: str, value: Any) -> None:
        self.answers.set(field_path, value)

    def update(self, values: dict[str, Any]) -> None:
        self.answers.update(values)

    # -- navigation --

    @property
    def current_step(self) -> int:
        return self.navigator.current_step

    @property
    def classification(self) -> Classification | None:
        return self.navigator.classification

    @classification.setter
    def classification(self, value: Classification | None) -> None:
        self.navigator.classification = value

    def statuses(self) -> dict[int, StepStatus]:
        return self.navigator.statuses()

    def advance(self) -> AdvanceResult:
        return self.navigator.advance()

    def retreat(self) -> bool:
        return self.navigator.retreat()

    def go_to_step(self, step_number: int) -> None:
        self.navigator.go_to_step(step_number)

    def _navigated(self, step_number: int) -> None:
        # The stored step follows every step change, edits pending or not.
        if self.persistence is not None and self.persistence.attached:
            self.persistence.cancel_pending()
            self.persistence.save_now()
        if self._on_navigate is not None:
            self._on_navigate(step_number)

    # -- submission --

    def can_submit(self) -> bool:
        return can_submit(self.answers, self.navigator.context, self.flow)

    async def submit(self, submitter: Submitter) -> SubmissionResult:
        """Gate, submit, and clear saved progress before reporting success.

        ``submitter`` receives a copy of the answers. It raises
        ``SubmissionRejected`` when the backend rejects specific fields; any
        other exception propagates.
        """
        if self._submitted:
            raise ValueError("Session has already been submitted")
        if self._submitting:
            logger.info("Ignoring duplicate submission for %s", self.flow.variant)
            return SubmissionResult(success=False, feedback=FormattedErrors(message=IN_PROGRESS_MESSAGE))

        if not self.can_submit():
            errors = submission_errors(self.flow, self.answers, self.navigator.context)
            feedback = self._surface(errors)
            logger.info("Submission blocked for %s: %d error(s)", self.flow.variant, len(errors))
            return SubmissionResult(success=False, feedback=feedback)

        if self.persistence is not None:
            self.persistence.cancel_pending()

        self._submitting = True
        try:
            return await self._send(submitter)
        finally:
            self._submitting = False

    async def _send(self, submitter: Submitter) -> SubmissionResult:
        try:
            response = await submitter(self.answers.to_dict())
        except SubmissionRejected as exc:
            errors = [
                ValidationError(field_path=self.locator.resolve(e.field_path), message=e.message)
                for e in exc.errors
            ]
            feedback = self._surface(errors)
            if not errors and exc.message:
                feedback = FormattedErrors(message=exc.message)
            logger.info("Submission rejected for %s: %s", self.flow.variant, feedback.message)
            if self.persistence is not None:
                self.persistence.save_now()
            return SubmissionResult(success=False, feedback=feedback)

        if self.persistence is not None:
            await self.persistence.clear()
            self.persistence.detach()
        self._submitted = True
        logger.info("Submitted %s onboarding", self.flow.variant)
        return SubmissionResult(success=True, response=response)

    def _surface(self, errors: list[ValidationError]) -> FormattedErrors:
        """Record errors on their steps, jump to the first one and notify the host."""
        ordered = self.locator.order(errors)
        feedback = self.locator.format(ordered)
        by_step: dict[int, list[ValidationError]] = defaultdict(list)
        for error in ordered:
            by_step[self.locator.locate(error.field_path).step_number].append(error)
        for step_number, step_errors in by_step.items():
            self.navigator.record_errors(step_number, step_errors)

        target = feedback.target
        if target is not None:
            self.navigator.go_to_step(target.step_number)
            if self._on_validation_error is not None:
                self._on_validation_error(by_step[target.step_number], target.step_number)
        return feedback
