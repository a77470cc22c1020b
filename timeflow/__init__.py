"""Timer precision and derived-metrics engine for time tracking and billing."""

__version__ = "1.0.0"
