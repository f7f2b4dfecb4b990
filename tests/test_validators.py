"""Tests for the built-in format validators."""

from __future__ import annotations

from onboardflow.wizard.validators.common import (
    VALIDATORS,
    validate_accepted,
    validate_ein,
    validate_email,
    validate_gstin,
    validate_length,
    validate_pan,
    validate_phone,
    validate_required,
    validate_url,
)


class TestRegistry:
    def test_all_registered(self):
        for name in ("required", "length", "email", "phone", "gstin", "pan", "ein", "url", "accepted"):
            assert name in VALIDATORS


class TestRequired:
    def test_empty(self):
        assert validate_required(None) is not None
        assert validate_required("") is not None
        assert validate_required("   ") is not None

    def test_ok(self):
        assert validate_required("hello") is None
        assert validate_required(0) is None
        assert validate_required(False) is None

    def test_custom_message(self):
        assert validate_required(None, message="Country is required") == "Country is required"


class TestLength:
    def test_bounds(self):
        assert validate_length("A", min_len=2, label="Company name") == (
            "Company name must be at least 2 characters"
        )
        assert validate_length("x" * 201, max_len=200, label="Company name") == (
            "Company name must be less than 200 characters"
        )
        assert validate_length("Acme", min_len=2, max_len=200) is None

    def test_non_text(self):
        assert validate_length(42, min_len=2, label="City name") == "City name must be text."


class TestGstin:
    def test_valid(self):
        assert validate_gstin("29ABCDE1234F1Z5") is None
        assert validate_gstin("22AAAAA0000A1Z5") is None

    def test_lowercase_invalid(self):
        assert validate_gstin("29abcde1234f1z5") is not None

    def test_short_invalid(self):
        assert validate_gstin("29ABCDE1234F1Z") == "GSTIN must be exactly 15 characters"

    def test_missing_z_invalid(self):
        assert validate_gstin("29ABCDE1234F1Y5") == "Invalid GSTIN format (e.g., 22AAAAA0000A1Z5)"


class TestPan:
    def test_valid(self):
        assert validate_pan("ABCDE1234F") is None

    def test_invalid(self):
        assert validate_pan("ABCD1234F") is not None
        assert validate_pan("abcde1234f") is not None
        assert validate_pan("ABCDE12345") == "Invalid PAN format (e.g., ABCDE1234F)"


class TestEin:
    def test_valid(self):
        assert validate_ein("12-3456789") is None
        assert validate_ein("123456789") is None

    def test_invalid(self):
        assert validate_ein("12345678") is not None
        assert validate_ein("123-456789") is not None
        assert validate_ein("12-34567890") is not None


class TestEmail:
    def test_valid(self):
        assert validate_email("user@example.com") is None
        assert validate_email("a@b.co") is None

    def test_invalid(self):
        assert validate_email("not-an-email") is not None
        assert validate_email("@no-local.com") is not None
        assert validate_email("user@nodot") is not None
        assert validate_email("us er@example.com") is not None


class TestPhone:
    def test_valid(self):
        assert validate_phone("555-123-4567") is None
        assert validate_phone("(555) 123-4567") is None
        assert validate_phone("+91 98765 43210") is None

    def test_invalid(self):
        assert validate_phone("123") is not None
        assert validate_phone("abcdefghij") is not None
        assert validate_phone("1" * 16) is not None


class TestUrl:
    def test_valid(self):
        assert validate_url("https://acme.example.com") is None
        assert validate_url("acme.com") is None

    def test_invalid(self):
        assert validate_url("not a url") is not None
        assert validate_url("localhost") is not None
        assert validate_url("ftp://acme.com") is not None


class TestAccepted:
    def test_only_true_accepted(self):
        assert validate_accepted(True) is None
        assert validate_accepted(False) is not None
        assert validate_accepted("true") is not None
        assert validate_accepted(None) is not None
