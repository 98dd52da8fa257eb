"""
Database models package - SQLAlchemy ORM models
"""

from .audit import AuditLog
from .comment import CommentRow
from .presentation import Presentation
from .slide import SlideRecord
from .version import VersionRecord

__all__ = [
    "AuditLog",
    "CommentRow",
    "Presentation",
    "SlideRecord",
    "VersionRecord",
]
