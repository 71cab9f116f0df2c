"""annorder - annotation order linter."""

__version__ = "0.3.0"
