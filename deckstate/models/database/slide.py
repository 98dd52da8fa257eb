"""
Slide model - individual slides of a presentation
"""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from deckstate.database import Base

from .presentation import utc_now


class SlideRecord(Base):
    """Slide content (content/notes/text boxes encrypted) and layout metadata"""

    __tablename__ = "slides"
    __table_args__ = (UniqueConstraint("presentation_id", "slide_id", name="uq_slides_presentation_slide"),)

    # Autoincrement id doubles as arrival order for ties on sort_order
    id = Column(Integer, primary_key=True, autoincrement=True)
    presentation_id = Column(String(100), ForeignKey("presentations.id"), nullable=False, index=True)
    slide_id = Column(String(100), nullable=False)
    sort_order = Column("order", Integer, nullable=False, default=0)
    title = Column(Text, nullable=True)
    content = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    theme = Column(String(100), nullable=True)
    slide_type = Column(String(20), nullable=True)  # cover, content, ending
    layout = Column(String(100), nullable=True)
    transition = Column(String(100), nullable=True)
    formatting = Column(JSON, nullable=True)
    styles = Column(JSON, nullable=True)
    positions = Column(JSON, nullable=True)
    text_boxes = Column(JSON, nullable=True)
    background_image = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    # Relationships
    presentation = relationship("Presentation", back_populates="slides")

    FIELD_MAP = {
        "order": "sort_order",
        "title": "title",
        "content": "content",
        "notes": "notes",
        "theme": "theme",
        "slideType": "slide_type",
        "layout": "layout",
        "transition": "transition",
        "formatting": "formatting",
        "styles": "styles",
        "positions": "positions",
        "textBoxes": "text_boxes",
        "backgroundImage": "background_image",
        "updatedAt": "updated_at",
    }

    def to_record(self) -> dict:
        return {key: getattr(self, attr) for key, attr in self.FIELD_MAP.items()}
