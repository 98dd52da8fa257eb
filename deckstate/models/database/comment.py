"""
Comment model - team discussion attached to a presentation
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from deckstate.database import Base

from .presentation import utc_now


class CommentRow(Base):
    """Encrypted comment text with author label"""

    __tablename__ = "presentation_comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    comment_id = Column(String(36), nullable=False, unique=True)
    presentation_id = Column(String(100), ForeignKey("presentations.id"), nullable=False, index=True)
    user_id = Column(String(255), nullable=True)
    user_name = Column(String(255), nullable=True)
    text = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    presentation = relationship("Presentation", back_populates="comments")

    def to_record(self) -> dict:
        return {
            "userId": self.user_id,
            "userName": self.user_name,
            "text": self.text,
            "createdAt": self.created_at,
        }
