from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from saysense.db.base import Base, UUIDMixin, utcnow


class TranscriptSegment(Base, UUIDMixin):
    __tablename__ = 'transcript_segments'

    session_id = Column(String(36), ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False, index=True)
    start_time = Column(Float, nullable=False)  # seconds from session start
    end_time = Column(Float, nullable=False)
    speaker_label = Column(String(128), nullable=False)
    transcript = Column(Text, nullable=False)
    confidence = Column(Float)
    highlights = Column(JSON)
    is_final = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    session = relationship("PresentationSession", back_populates="transcript_segments")
