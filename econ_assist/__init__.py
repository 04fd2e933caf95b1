"""Request deduplication and memoization layer for the economics assistant tools."""

__version__ = "0.1.0"
