"""AI generation services for meeting notes."""

__version__ = "1.0.0"
