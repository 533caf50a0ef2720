"""cmdbctl — configuration management database control CLI."""

__version__ = "0.1.0"
