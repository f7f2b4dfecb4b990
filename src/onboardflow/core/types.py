"""Core type definitions shared across all onboardflow modules."""

from __future__ import annotations

from enum import StrEnum


class FlowVariant(StrEnum):
    """Named step configurations selected before the wizard starts."""

    NEW_BUSINESS = "new_business"
    EXISTING_BUSINESS = "existing_business"


class Classification(StrEnum):
    """Inferred user segment; adjusts which fields are mandatory."""

    ENTERPRISE = "enterprise"
    FREEMIUM = "freemium"
    GROWTH = "growth"
    ASPIRING_FOUNDER = "aspiringFounder"
    CORPORATE_EMPLOYEE = "corporateEmployee"
    WITH_GST = "withGST"
    WITHOUT_GST = "withoutGST"
    WITH_DOMAIN_MAIL = "withDomainMail"
    WITHOUT_DOMAIN_MAIL = "withoutDomainMail"
    EMPLOYEE = "employee"
    FOUNDER = "founder"
    DIN_VERIFICATION = "dinVerification"
    MOBILE_OTP_VERIFIED = "mobileOtpVerified"


class StepStatus(StrEnum):
    """Derived display status of a wizard step."""

    COMPLETED = "completed"
    ACTIVE = "active"
    ERROR = "error"
    UPCOMING = "upcoming"


class SnapshotSource(StrEnum):
    """Where a restored snapshot came from."""

    REMOTE = "remote"
    LOCAL = "local"
    NONE = "none"
