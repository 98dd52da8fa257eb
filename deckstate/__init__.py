"""Slide document state, undo/redo history and versioning engine."""

__version__ = "0.1.0"
