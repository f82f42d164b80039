"""PLE Platform backend: content lifecycle and version control."""

__version__ = "1.0.0"
