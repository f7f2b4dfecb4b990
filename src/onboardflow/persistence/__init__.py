"""Progress persistence: local and remote tiers and the auto-save adapter."""
