"""Genesis alert delivery: multi-channel dispatch with retry and deduplication."""

__version__ = "0.1.0"
