"""ZenTask: personal task tracker with optimistic persistence and an optional AI assistant."""

__version__ = "0.1.0"
