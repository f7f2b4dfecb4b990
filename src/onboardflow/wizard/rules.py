"""Field validation rule set.

Each rule is a pure function ``(value, answers, context) -> str | None`` keyed
by field path. Rules are conditional on sibling toggles, on jurisdiction and
on the user's classification; format checks come from
``onboardflow.wizard.validators.common``. Unknown field paths are always
valid so a changed step configuration can never deadlock navigation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Union

from onboardflow.core.types import Classification
from onboardflow.wizard.answers import MISSING, AnswerSet, get_path, is_blank
from onboardflow.wizard.models import FlowPolicy, ValidationError
from onboardflow.wizard.validators.common import VALIDATORS

logger = logging.getLogger(__name__)

Answers = Union[AnswerSet, Mapping[str, Any]]
FieldRule = Callable[[Any, Answers, "ValidationContext"], "str | None"]

# Countries whose addresses need a state/province.
STATE_COUNTRIES: frozenset[str] = frozenset({"IN", "US", "CA", "AU"})
DEFAULT_COUNTRY = "IN"

FIELD_RULES: dict[str, FieldRule] = {}


def field_rule(*paths: str):
    """Decorator to register a rule for one or more field paths."""
    def decorator(fn: FieldRule) -> FieldRule:
        for path in paths:
            FIELD_RULES[path] = fn
        return fn
    return decorator


def read(answers: Answers, path: str) -> Any:
    if isinstance(answers, AnswerSet):
        return answers.get(path)
    return get_path(dict(answers), path)


def resolve_country(answers: Answers) -> str:
    for path in ("businessDetails.country", "country"):
        value = read(answers, path)
        if isinstance(value, str) and value.strip():
            return value.strip().upper()
    return DEFAULT_COUNTRY


@dataclass(frozen=True)
class ValidationContext:
    """Jurisdiction and classification parameters for rule evaluation."""

    country: str = DEFAULT_COUNTRY
    classification: Classification | None = None
    policy: FlowPolicy = field(default_factory=FlowPolicy)

    @classmethod
    def from_answers(
        cls,
        answers: Answers,
        classification: Classification | str | None = None,
        policy: FlowPolicy | None = None,
    ) -> ValidationContext:
        if isinstance(classification, str) and not isinstance(classification, Classification):
            try:
                classification = Classification(classification)
            except ValueError:
                logger.warning("Ignoring unknown classification %r", classification)
                classification = None
        return cls(
            country=resolve_country(answers),
            classification=classification,
            policy=policy or FlowPolicy(),
        )

    @property
    def requires_state(self) -> bool:
        return self.country in STATE_COUNTRIES

    @property
    def mobile_required(self) -> bool:
        return (
            self.classification is not None
            and self.classification in self.policy.mobile_required_classifications
        )


# -- helpers --


def _check(name: str, value: Any, **params: Any) -> str | None:
    return VALIDATORS[name](value, **params)


def _required(value: Any, message: str) -> str | None:
    return _check("required", None if value is MISSING else value, message=message)


def _optional(value: Any, name: str, **params: Any) -> str | None:
    if is_blank(value):
        return None
    return _check(name, value, **params)


def _required_text(
    value: Any, message: str, min_len: int | None, max_len: int | None, label: str
) -> str | None:
    return _required(value, message) or _check(
        "length", value, min_len=min_len, max_len=max_len, label=label
    )


def _flag(answers: Answers, path: str, default: bool = False) -> bool:
    value = read(answers, path)
    if isinstance(value, bool):
        return value
    return default


def _boolean(value: Any) -> str | None:
    if value is MISSING or value is None or isinstance(value, bool):
        return None
    return "Must be true or false"


# -- Step 1: business details --


@field_rule("companyType")
def _company_type(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    return _required(value, "Company type is required")


@field_rule("businessDetails.companyName")
def _company_name(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    return _required_text(value, "Company name is required", 2, 200, "Company name")


@field_rule("businessDetails.businessType")
def _business_type(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    return _required(value, "Business type is required")


@field_rule("businessDetails.country")
def _country(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    return _required(value, "Country is required")


@field_rule("businessDetails.description")
def _description(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    return _optional(value, "length", max_len=1000, label="Description")


@field_rule("website")
def _website(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    return _optional(value, "url")


# -- Step 2: tax details and addresses --


@field_rule("taxRegistered", "vatGstRegistered", "mailingAddressSameAsRegistered")
def _toggle(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    return _boolean(value)


@field_rule("gstin")
def _gstin(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    if not (_flag(answers, "vatGstRegistered") and ctx.country == "IN"):
        return None
    return _required(value, "GSTIN is required when VAT/GST Registered is enabled") or _check(
        "gstin", value
    )


@field_rule("vatNumber")
def _vat_number(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    if _flag(answers, "vatGstRegistered") and ctx.country != "IN":
        error = _required(value, "VAT number is required when VAT/GST Registered is enabled")
        if error:
            return error
    return _optional(value, "length", max_len=50, label="VAT number")


@field_rule("panNumber")
def _pan_number(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    if not (_flag(answers, "taxRegistered") and ctx.country == "IN"):
        return None
    return _required(value, "PAN is required when Tax Registered is enabled") or _check(
        "pan", value
    )


@field_rule("einNumber")
def _ein_number(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    if not (_flag(answers, "taxRegistered") and ctx.country == "US"):
        return None
    return _required(value, "EIN is required when Tax Registered is enabled") or _check(
        "ein", value
    )


@field_rule("cinNumber")
def _cin_number(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    return _optional(value, "length", max_len=50, label="CIN number")


@field_rule("state")
def _state(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    if not ctx.requires_state:
        return None
    candidates = (value, read(answers, "billingState"), read(answers, "incorporationState"))
    if all(is_blank(candidate) for candidate in candidates):
        return "State/Province is required for this country"
    return None


@field_rule("billingStreet")
def _billing_street(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    if is_blank(value):
        if is_blank(read(answers, "billingAddress")):
            return "Billing street address is required"
        return None
    if not isinstance(value, str):
        return "Billing street address must be text."
    if len(value) < 10:
        return "Address must be at least 10 characters"
    if len(value) > 200:
        return "Address must be less than 200 characters"
    return None


@field_rule("billingCity")
def _billing_city(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    return _required_text(value, "Billing city is required", 2, 100, "City name")


@field_rule("billingZip")
def _billing_zip(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    return _required_text(value, "Billing zip/postal code is required", 3, 20, "Zip code")


def _mailing_differs(answers: Answers) -> bool:
    return not _flag(answers, "mailingAddressSameAsRegistered", default=True)


@field_rule("mailingStreet")
def _mailing_street(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    if _mailing_differs(answers):
        return _required(value, "Mailing street address is required")
    return None


@field_rule("mailingCity")
def _mailing_city(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    if _mailing_differs(answers):
        return _required(value, "Mailing city is required")
    return None


@field_rule("mailingZip")
def _mailing_zip(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    if _mailing_differs(answers):
        return _required(value, "Mailing zip/postal code is required")
    return None


@field_rule("mailingState")
def _mailing_state(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    if _mailing_differs(answers) and ctx.requires_state:
        return _required(value, "Mailing state/province is required")
    return None


# -- Step 3: admin details --


@field_rule("firstName")
def _first_name(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    return _required_text(value, "First name is required", 2, 50, "First name")


@field_rule("lastName")
def _last_name(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    return _required_text(value, "Last name is required", 2, 50, "Last name")


@field_rule("adminEmail", "supportEmail")
def _required_email(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    return _required(value, "Email is required") or _check("email", value)


@field_rule("billingEmail")
def _billing_email(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    return _optional(value, "email")


@field_rule("adminMobile")
def _admin_mobile(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    if ctx.mobile_required:
        error = _required(value, "Admin mobile number is required for your account type")
        if error:
            return error
    return _optional(value, "phone")


@field_rule("contactDirectPhone", "contactMobilePhone")
def _contact_phone(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    return _optional(value, "phone")


@field_rule("contactJobTitle")
def _job_title(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    return _optional(value, "length", max_len=100, label="Job title")


# -- Step 4: review --


@field_rule("termsAccepted")
def _terms_accepted(value: Any, answers: Answers, ctx: ValidationContext) -> str | None:
    return _check("accepted", value)


# -- public API --


def validate_field(
    field_path: str, answers: Answers, context: ValidationContext
) -> list[ValidationError]:
    """Validate one field. Returns an empty list when the field is valid."""
    rule = FIELD_RULES.get(field_path)
    if rule is None:
        return []
    value = read(answers, field_path)
    try:
        message = rule(value, answers, context)
    except (TypeError, ValueError, AttributeError, KeyError) as exc:
        logger.warning("Rule for %s failed on %r: %s", field_path, value, exc)
        message = "Invalid value"
    if message:
        return [ValidationError(field_path=field_path, message=message)]
    return []


def is_field_valid(field_path: str, answers: Answers, context: ValidationContext) -> bool:
    return not validate_field(field_path, answers, context)


def validate_fields(
    field_paths: Iterable[str], answers: Answers, context: ValidationContext
) -> list[ValidationError]:
    """Validate ``field_paths`` in order, concatenating their errors."""
    errors: list[ValidationError] = []
    for path in field_paths:
        errors.extend(validate_field(path, answers, context))
    return errors
