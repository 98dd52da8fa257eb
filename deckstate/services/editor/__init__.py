"""Editing sessions and the editor HTTP service."""

from .session import EditorSession

__all__ = ["EditorSession"]
