"""Business onboarding wizard engine: validation, navigation and resumable progress."""
