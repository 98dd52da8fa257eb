"""
Version model - immutable point-in-time snapshots of a presentation
"""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from deckstate.database import Base

from .presentation import utc_now


class VersionRecord(Base):
    """Version snapshot with encrypted slide content"""

    __tablename__ = "presentation_versions"

    id = Column(String(36), primary_key=True)
    presentation_id = Column(String(100), ForeignKey("presentations.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False, index=True)
    created_by = Column(String(255), nullable=True)
    summary = Column(Text, nullable=True)
    slides_snapshot = Column(JSON, nullable=False, default=list)

    presentation = relationship("Presentation", back_populates="versions")

    def to_record(self) -> dict:
        return {
            "createdAt": self.created_at,
            "createdBy": self.created_by,
            "summary": self.summary,
            "slidesSnapshot": self.slides_snapshot,
        }
