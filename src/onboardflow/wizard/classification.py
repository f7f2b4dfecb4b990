"""Infer the user's classification from verification state, email and profile.

The classification decides classification-driven requirements such as the
mandatory admin mobile number (see ``FlowPolicy``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from onboardflow.core.types import Classification

logger = logging.getLogger(__name__)

PERSONAL_EMAIL_DOMAINS: tuple[str, ...] = (
    "gmail.com",
    "yahoo.com",
    "hotmail.com",
    "outlook.com",
    "aol.com",
    "icloud.com",
    "protonmail.com",
    "mail.com",
    "yandex.com",
    "zoho.com",
    "gmx.com",
)

# Values accepted from an explicit ``classification`` request parameter.
EXPLICIT_CLASSIFICATIONS: frozenset[Classification] = frozenset(
    {
        Classification.ENTERPRISE,
        Classification.FREEMIUM,
        Classification.GROWTH,
        Classification.ASPIRING_FOUNDER,
        Classification.CORPORATE_EMPLOYEE,
        Classification.WITH_GST,
        Classification.WITHOUT_GST,
        Classification.WITH_DOMAIN_MAIL,
        Classification.WITHOUT_DOMAIN_MAIL,
        Classification.EMPLOYEE,
        Classification.FOUNDER,
    }
)


@dataclass(frozen=True)
class EmailDomain:
    is_domain_email: bool
    domain: str | None


def verify_email_domain(email: str) -> EmailDomain:
    """Company domain or personal mailbox provider?"""
    _, _, domain = email.partition("@")
    domain = domain.lower()
    if not domain:
        return EmailDomain(is_domain_email=False, domain=None)
    is_personal = any(personal in domain for personal in PERSONAL_EMAIL_DOMAINS)
    return EmailDomain(is_domain_email=not is_personal, domain=domain)


def determine_gst_status(
    params: Mapping[str, str] | None = None,
    profile: Mapping[str, Any] | None = None,
    answers: Mapping[str, Any] | None = None,
) -> bool | None:
    """GST registration from request params, then profile, then answers; None when unknown."""
    if params:
        gst = params.get("gst")
        if gst == "true":
            return True
        if gst == "false":
            return False
    if profile:
        if profile.get("hasExistingBusiness"):
            return True
        if profile.get("isRegisteredBusiness") is False:
            return False
        if profile.get("hasGST"):
            return True
    if answers:
        if answers.get("vatGstRegistered") or answers.get("gstin"):
            return True
    return None


def _from_profile(profile: Mapping[str, Any]) -> Classification | None:
    role = profile.get("role")
    if role == "employee" or profile.get("isEmployee"):
        return Classification.EMPLOYEE
    if role == "founder" or profile.get("isFounder") or profile.get("isOwner"):
        return Classification.FOUNDER
    tier = profile.get("tier")
    if tier:
        plan = profile.get("plan")
        if tier == "freemium" or plan == "free":
            return Classification.FREEMIUM
        if tier == "growth" or plan == "growth":
            return Classification.GROWTH
        if tier == "enterprise" or plan == "enterprise":
            return Classification.ENTERPRISE
    return None


def determine_user_classification(
    email: str | None = None,
    profile: Mapping[str, Any] | None = None,
    params: Mapping[str, str] | None = None,
    mobile_verified: bool = False,
    din_verified: bool = False,
    answers: Mapping[str, Any] | None = None,
) -> Classification:
    """Resolve the classification in precedence order.

    Verified mobile, then verified DIN, then an explicit valid
    ``classification`` parameter, then the email-domain x GST matrix, then
    GST status alone, then profile role and tier. Defaults to
    ``aspiringFounder``.
    """
    if mobile_verified:
        return Classification.MOBILE_OTP_VERIFIED
    if din_verified:
        return Classification.DIN_VERIFICATION

    explicit = (params or {}).get("classification")
    if explicit:
        try:
            candidate = Classification(explicit)
        except ValueError:
            candidate = None
        if candidate in EXPLICIT_CLASSIFICATIONS:
            return candidate
        logger.debug("Ignoring unsupported classification parameter %r", explicit)

    has_gst = determine_gst_status(params, profile, answers)

    if email:
        domain = verify_email_domain(email)
        if has_gst is not None:
            if domain.is_domain_email:
                return Classification.CORPORATE_EMPLOYEE
            return Classification.FOUNDER if has_gst else Classification.ASPIRING_FOUNDER
        if domain.is_domain_email:
            return Classification.WITH_DOMAIN_MAIL
        return Classification.WITHOUT_DOMAIN_MAIL

    if has_gst is True:
        return Classification.WITH_GST
    if has_gst is False:
        return Classification.WITHOUT_GST

    if profile:
        from_profile = _from_profile(profile)
        if from_profile is not None:
            return from_profile

    return Classification.ASPIRING_FOUNDER
