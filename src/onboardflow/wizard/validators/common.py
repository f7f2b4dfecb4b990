"""Built-in format validators for onboarding fields."""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlparse

# Registry of validator functions: name -> callable(value, **params) -> str | None
# Returns an error message string on failure, None on success.
VALIDATORS: dict[str, Any] = {}

GSTIN_PATTERN = re.compile(r"\d{2}[A-Z]{5}\d{4}[A-Z][A-Z0-9]Z[A-Z0-9]")
PAN_PATTERN = re.compile(r"[A-Z]{5}\d{4}[A-Z]")
EIN_PATTERN = re.compile(r"\d{2}-?\d{7}")
EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


def register(name: str):
    """Decorator to register a validator function."""
    def decorator(fn):
        VALIDATORS[name] = fn
        return fn
    return decorator


def _text(value: Any) -> str | None:
    """Stripped string, or None when the value is not text."""
    if not isinstance(value, str):
        return None
    return value.strip()


@register("required")
def validate_required(value: Any, message: str = "This field is required.", **_kwargs: Any) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return message
    return None


@register("length")
def validate_length(
    value: Any,
    min_len: int | None = None,
    max_len: int | None = None,
    label: str = "Value",
    **_kwargs: Any,
) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        return f"{label} must be text."
    if min_len is not None and len(value) < int(min_len):
        return f"{label} must be at least {min_len} characters"
    if max_len is not None and len(value) > int(max_len):
        return f"{label} must be less than {max_len} characters"
    return None


@register("email")
def validate_email(value: Any, **_kwargs: Any) -> str | None:
    text = _text(value)
    if text is None:
        return "Please enter a valid email address"
    if not EMAIL_PATTERN.fullmatch(text):
        return "Please enter a valid email address"
    return None


@register("phone")
def validate_phone(value: Any, **_kwargs: Any) -> str | None:
    text = _text(value)
    if text is None:
        return "Invalid phone number format"
    digits = re.sub(r"[\s\-\(\)\+]", "", text)
    if not digits.isdigit() or not 10 <= len(digits) <= 15:
        return "Please enter a valid phone number (10 to 15 digits)."
    return None


@register("gstin")
def validate_gstin(value: Any, **_kwargs: Any) -> str | None:
    if not isinstance(value, str):
        return "Invalid GSTIN format (e.g., 22AAAAA0000A1Z5)"
    if len(value) != 15:
        return "GSTIN must be exactly 15 characters"
    if not GSTIN_PATTERN.fullmatch(value):
        return "Invalid GSTIN format (e.g., 22AAAAA0000A1Z5)"
    return None


@register("pan")
def validate_pan(value: Any, **_kwargs: Any) -> str | None:
    if not isinstance(value, str):
        return "Invalid PAN format (e.g., ABCDE1234F)"
    if len(value) != 10:
        return "PAN must be exactly 10 characters"
    if not PAN_PATTERN.fullmatch(value):
        return "Invalid PAN format (e.g., ABCDE1234F)"
    return None


@register("ein")
def validate_ein(value: Any, **_kwargs: Any) -> str | None:
    text = _text(value)
    if text is None:
        return "Invalid EIN format (e.g., 12-3456789)"
    digits = re.sub(r"\D", "", text)
    if len(digits) != 9 or not EIN_PATTERN.fullmatch(text):
        return "Invalid EIN format (e.g., 12-3456789)"
    return None


@register("url")
def validate_url(value: Any, **_kwargs: Any) -> str | None:
    text = _text(value)
    if text is None:
        return "Please enter a valid website URL"
    candidate = text if text.startswith("http") else f"https://{text}"
    parsed = urlparse(candidate)
    host = parsed.hostname or ""
    if parsed.scheme not in ("http", "https") or "." not in host or " " in text:
        return "Please enter a valid website URL"
    return None


@register("accepted")
def validate_accepted(value: Any, message: str = "You must accept the Terms and Conditions to continue", **_kwargs: Any) -> str | None:
    if value is not True:
        return message
    return None
