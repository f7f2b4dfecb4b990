"""Format validators used by the field rule set."""
