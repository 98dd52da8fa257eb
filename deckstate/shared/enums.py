"""
Enums and constants used across the engine.
"""

from enum import Enum


class FieldKey(str, Enum):
    """Editable text regions on a slide."""

    TITLE = "title"
    SUBTITLE = "subtitle"
    NOTES = "notes"
    TEXT_BOX = "text_box"


class SlideType(str, Enum):
    """Role of a slide within the deck."""

    COVER = "cover"
    CONTENT = "content"
    ENDING = "ending"


class PresentationStatus(str, Enum):
    """Publishing status of a presentation."""

    DRAFT = "draft"
    FINAL = "final"


class MoveDirection(str, Enum):
    """Direction for moving the selected slide."""

    UP = "up"
    DOWN = "down"


class TextAlign(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class ListType(str, Enum):
    NONE = "none"
    BULLETS = "bullets"
    NUMBERS = "numbers"


class RemoteChannel(str, Enum):
    """Change streams published by a remote store."""

    COMMENTS = "comments"
    VERSIONS = "versions"
    SLIDES = "slides"


class AuditAction(str, Enum):
    """Audit events emitted by the engine."""

    ADD_SLIDE = "ADD_SLIDE"
    DELETE_SLIDE = "DELETE_SLIDE"
    SAVE_VERSION = "SAVE_VERSION"
    RESTORE_VERSION = "RESTORE_VERSION"
    UPDATE_SLIDE_SET = "UPDATE_SLIDE_SET"
    SHARE_PRESENTATION = "SHARE_PRESENTATION"
    ADD_COMMENT = "ADD_COMMENT"


class StatusVariant(str, Enum):
    """Visual variant of a transient status message."""

    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
    DRAFT = "draft"
    FINAL = "final"
    AUTH = "auth"
