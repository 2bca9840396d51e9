"""Client-side order synchronization and notifications."""

__version__ = "0.1.0"
