"""Step readiness: may the active step be left in the advance direction?

``step_fields`` is the one place that knows which fields a step owns for the
current toggle state. Both ``can_advance`` and the navigator call it, so the
advance-time field list and the readiness check cannot drift apart.
"""

from __future__ import annotations

import logging

from onboardflow.wizard.answers import is_blank
from onboardflow.wizard.models import FlowDefinition, ValidationError
from onboardflow.wizard.rules import (
    Answers,
    ValidationContext,
    is_field_valid,
    read,
    validate_fields,
)

logger = logging.getLogger(__name__)

BUSINESS_DETAILS = "businessDetails"
TAX_DETAILS = "taxDetails"
ADMIN_DETAILS = "adminDetails"
REVIEW = "review"


def _enabled(answers: Answers, path: str) -> bool:
    return read(answers, path) is True


def step_fields(step_id: str, answers: Answers, context: ValidationContext) -> list[str]:
    """Fields validated when leaving ``step_id``, in declared order.

    Conditionally required fields are included only while their toggle or
    jurisdiction makes them relevant. Unknown step ids own no fields.
    """
    if step_id == BUSINESS_DETAILS:
        return [
            "companyType",
            "businessDetails.companyName",
            "businessDetails.businessType",
            "businessDetails.country",
            "businessDetails.description",
            "website",
        ]

    if step_id == TAX_DETAILS:
        fields = ["taxRegistered"]
        if _enabled(answers, "taxRegistered"):
            if context.country == "IN":
                fields.append("panNumber")
            elif context.country == "US":
                fields.append("einNumber")
        fields.append("vatGstRegistered")
        if _enabled(answers, "vatGstRegistered"):
            fields.append("gstin" if context.country == "IN" else "vatNumber")
        fields.append("cinNumber")
        if context.requires_state:
            fields.append("state")
        fields.extend(["billingStreet", "billingCity", "billingZip"])
        fields.append("mailingAddressSameAsRegistered")
        if read(answers, "mailingAddressSameAsRegistered") is False:
            fields.extend(["mailingStreet", "mailingCity", "mailingZip"])
            if context.requires_state:
                fields.append("mailingState")
        return fields

    if step_id == ADMIN_DETAILS:
        fields = ["firstName", "lastName", "adminEmail"]
        if context.mobile_required or not is_blank(read(answers, "adminMobile")):
            fields.append("adminMobile")
        fields.extend(["supportEmail", "billingEmail", "contactJobTitle"])
        return fields

    if step_id == REVIEW:
        return []

    return []


def validate_step(step_id: str, answers: Answers, context: ValidationContext) -> list[ValidationError]:
    return validate_fields(step_fields(step_id, answers, context), answers, context)


def _tax_id_present(answers: Answers, context: ValidationContext) -> bool:
    """Tax toggle plus jurisdiction: the matching tax ID is present and well-formed."""
    if not _enabled(answers, "taxRegistered"):
        return True
    if context.country == "IN":
        return not is_blank(read(answers, "panNumber")) and is_field_valid("panNumber", answers, context)
    if context.country == "US":
        return not is_blank(read(answers, "einNumber")) and is_field_valid("einNumber", answers, context)
    return True


def _vat_id_present(answers: Answers, context: ValidationContext) -> bool:
    if not _enabled(answers, "vatGstRegistered"):
        return True
    path = "gstin" if context.country == "IN" else "vatNumber"
    return not is_blank(read(answers, path)) and is_field_valid(path, answers, context)


def _billing_address_present(answers: Answers) -> bool:
    return not (is_blank(read(answers, "billingStreet")) and is_blank(read(answers, "billingAddress")))


def _mailing_block_present(answers: Answers) -> bool:
    if read(answers, "mailingAddressSameAsRegistered") is not False:
        return True
    return all(
        not is_blank(read(answers, path))
        for path in ("mailingStreet", "mailingCity", "mailingZip")
    )


def can_advance(step_id: str, answers: Answers, context: ValidationContext) -> bool:
    """Whether ``step_id`` may be left forward. Unknown step ids never block."""
    fields = step_fields(step_id, answers, context)

    if step_id == BUSINESS_DETAILS:
        return all(is_field_valid(path, answers, context) for path in fields)

    if step_id == TAX_DETAILS:
        return (
            all(is_field_valid(path, answers, context) for path in fields)
            and _tax_id_present(answers, context)
            and _vat_id_present(answers, context)
            and _billing_address_present(answers)
            and _mailing_block_present(answers)
        )

    if step_id == ADMIN_DETAILS:
        if context.mobile_required and is_blank(read(answers, "adminMobile")):
            return False
        return all(is_field_valid(path, answers, context) for path in fields)

    if step_id == REVIEW:
        return True

    logger.debug("No readiness rules for step %r; allowing advance", step_id)
    return True


def all_step_fields(flow: FlowDefinition, answers: Answers, context: ValidationContext) -> list[str]:
    """Every field the flow owns, in flow order: declared fields plus readiness fields."""
    paths: list[str] = []
    for step in flow.steps:
        for path in [*step.field_paths, *step_fields(step.id, answers, context)]:
            if path not in paths:
                paths.append(path)
    return paths


def submission_errors(
    flow: FlowDefinition, answers: Answers, context: ValidationContext
) -> list[ValidationError]:
    """Every outstanding field error across the flow, in declared order."""
    return validate_fields(all_step_fields(flow, answers, context), answers, context)


def can_submit(answers: Answers, context: ValidationContext, flow: FlowDefinition) -> bool:
    """Final submission gate: terms accepted and the whole answer set valid."""
    if read(answers, "termsAccepted") is not True:
        return False
    if submission_errors(flow, answers, context):
        return False
    return all(can_advance(step.id, answers, context) for step in flow.steps)
