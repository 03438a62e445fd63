"""One Mail workflow node and the runtime that hosts it."""

__version__ = "0.1.0"
