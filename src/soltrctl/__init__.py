"""soltrctl — SoltrOS maintenance helper."""

__version__ = "0.4.0"
