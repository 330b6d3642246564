from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from saysense.db.base import Base, TimestampMixin, UUIDMixin, enum_column, utcnow
from saysense.models.enums import SessionStatus, SessionType, SourceType


class PresentationSession(Base, UUIDMixin, TimestampMixin):
    """A recorded or live presentation owned by exactly one user."""

    __tablename__ = 'sessions'

    user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    session_type = enum_column(SessionType, nullable=False)
    source_type = enum_column(SourceType, nullable=False)
    source_url = Column(String(2048))
    language = Column(String(16), nullable=False, default='en-US')
    status = enum_column(SessionStatus, nullable=False, default=SessionStatus.PROCESSING)
    duration_sec = Column(Integer, nullable=False, default=0)
    completed_at = Column(DateTime(timezone=True))
    summary = Column(Text)
    sentiment = Column(Float, nullable=False, default=0.0)
    tags = Column(JSON, nullable=False, default=list)
    deleted_at = Column(DateTime(timezone=True), index=True)

    user = relationship("User", back_populates="sessions")
    participants = relationship(
        "Participant", back_populates="session", cascade="all, delete-orphan", order_by="Participant.created_at"
    )
    transcript_segments = relationship(
        "TranscriptSegment",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="TranscriptSegment.start_time",
    )
    analysis_metrics = relationship("AnalysisMetric", back_populates="session", cascade="all, delete-orphan")
    feedback_suggestions = relationship("FeedbackSuggestion", back_populates="session", cascade="all, delete-orphan")


class Participant(Base, UUIDMixin):
    __tablename__ = 'participants'

    session_id = Column(String(36), ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    role = Column(String(64), nullable=False, default='Self')
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    session = relationship("PresentationSession", back_populates="participants")
