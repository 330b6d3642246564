from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from saysense.db.base import Base, TimestampMixin, UUIDMixin, enum_column
from saysense.models.enums import Severity, SuggestionType


class FeedbackSuggestion(Base, UUIDMixin, TimestampMixin):
    __tablename__ = 'feedback_suggestions'

    session_id = Column(String(36), ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False, index=True)
    type = enum_column(SuggestionType, nullable=False, index=True)
    severity = enum_column(Severity, nullable=False, default=Severity.MEDIUM)
    message = Column(Text, nullable=False)
    start_time = Column(Float)
    end_time = Column(Float)
    is_applied = Column(Boolean, nullable=False, default=False)
    is_resolved = Column(Boolean, nullable=False, default=False)
    resolved_at = Column(DateTime(timezone=True))
    # "metadata" is reserved on declarative classes
    meta = Column('metadata', JSON)

    session = relationship("PresentationSession", back_populates="feedback_suggestions")
