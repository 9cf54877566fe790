"""sparktop - process monitor with per-process history sparklines."""

__version__ = "0.1.0"
