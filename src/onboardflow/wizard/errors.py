"""Turn field-level validation errors into user-facing feedback."""

from __future__ import annotations

import logging
from typing import Iterable

from onboardflow.wizard.models import FieldMapping, FlowDefinition, FormattedErrors, ValidationError

logger = logging.getLogger(__name__)

GENERIC_MESSAGE = "Please check the form for errors and try again."
MULTIPLE_PREFIX = "Please fix the following fields: "

# Field names the progress service and submit endpoint report, mapped to
# the answer paths the wizard uses.
BACKEND_ALIASES: dict[str, str] = {
    "legalCompanyName": "businessDetails.companyName",
    "companyName": "businessDetails.companyName",
    "companySize": "businessDetails.organizationSize",
    "businessType": "businessDetails.businessType",
    "country": "businessDetails.country",
}


class ErrorLocator:
    """Maps field paths to display names and owning steps for one flow.

    Fields missing from the flow configuration fall back to their raw path
    as display name and step 1.
    """

    def __init__(self, flow: FlowDefinition, aliases: dict[str, str] | None = None) -> None:
        self._display: dict[str, str] = {}
        self._step: dict[str, int] = {}
        self._order: dict[str, int] = {}
        for step in flow.steps:
            for field in step.fields:
                if field.path in self._step:
                    continue
                self._display[field.path] = field.display_name
                self._step[field.path] = step.number
                self._order[field.path] = len(self._order)
        self._aliases = dict(BACKEND_ALIASES if aliases is None else aliases)

    def resolve(self, field_path: str) -> str:
        """Strip a leading ``/`` and map backend aliases to wizard paths."""
        path = field_path.lstrip("/").replace("/", ".")
        if path in self._step:
            return path
        return self._aliases.get(path, path)

    def locate(self, field_path: str) -> FieldMapping:
        path = self.resolve(field_path)
        if path not in self._step:
            logger.debug("Field %r is not in the flow configuration", field_path)
        return FieldMapping(
            field_path=path,
            display_name=self._display.get(path, path),
            step_number=self._step.get(path, 1),
        )

    def order(self, errors: Iterable[ValidationError]) -> list[ValidationError]:
        """Errors sorted by declared flow order; unknown fields keep input order after them."""
        indexed = list(enumerate(errors))
        known = len(self._order)

        def _key(item: tuple[int, ValidationError]) -> tuple[int, int]:
            position, error = item
            return (self._order.get(self.resolve(error.field_path), known), position)

        return [error for _, error in sorted(indexed, key=_key)]

    def format(self, errors: Iterable[ValidationError]) -> FormattedErrors:
        ordered = self.order(errors)
        if not ordered:
            return FormattedErrors(message=GENERIC_MESSAGE)

        fields: list[FieldMapping] = []
        seen: set[str] = set()
        for error in ordered:
            mapping = self.locate(error.field_path)
            if mapping.field_path in seen:
                continue
            seen.add(mapping.field_path)
            fields.append(mapping)

        if len(ordered) == 1:
            message = f"{fields[0].display_name}: {ordered[0].message}"
        else:
            message = MULTIPLE_PREFIX + ", ".join(f.display_name for f in fields)
        return FormattedErrors(message=message, fields=fields)
