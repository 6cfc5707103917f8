"""Local URL shortener with click analytics and an activity log."""

__version__ = "0.1.0"
