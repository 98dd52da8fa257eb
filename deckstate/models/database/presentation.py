"""
Presentation model - one row per slide deck
"""

from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship

from deckstate.database import Base


def utc_now() -> datetime:
    return datetime.now(UTC)


class Presentation(Base):
    """Presentation metadata record"""

    __tablename__ = "presentations"

    id = Column(String(100), primary_key=True)
    title = Column(String(255), nullable=True)
    status = Column(String(20), default="draft")  # draft, final
    owner_id = Column(String(255), nullable=True, index=True)
    collaborator_ids = Column(JSON, default=list)
    is_shared = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now)

    # Relationships
    slides = relationship("SlideRecord", back_populates="presentation", cascade="all, delete-orphan")
    versions = relationship("VersionRecord", back_populates="presentation", cascade="all, delete-orphan")
    comments = relationship("CommentRow", back_populates="presentation", cascade="all, delete-orphan")

    # remote record key -> column attribute
    FIELD_MAP = {
        "title": "title",
        "status": "status",
        "ownerId": "owner_id",
        "collaboratorIds": "collaborator_ids",
        "isShared": "is_shared",
        "createdAt": "created_at",
        "updatedAt": "updated_at",
    }

    def to_record(self) -> dict:
        return {key: getattr(self, attr) for key, attr in self.FIELD_MAP.items()}
