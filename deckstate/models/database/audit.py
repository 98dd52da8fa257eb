"""
Audit log model - who did what to which presentation
"""

from sqlalchemy import JSON, Column, DateTime, String

from deckstate.database import Base

from .presentation import utc_now


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True)
    presentation_id = Column(String(100), nullable=False, index=True)
    user_id = Column(String(255), nullable=True)
    user_email = Column(String(255), nullable=True)
    action = Column(String(50), nullable=False, index=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
