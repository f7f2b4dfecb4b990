"""Onboarding wizard engine: rules, readiness, navigation, feedback and sessions."""
