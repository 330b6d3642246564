from sqlalchemy import Column, DateTime, Float, ForeignKey, String
from sqlalchemy.orm import relationship

from saysense.db.base import Base, UUIDMixin, enum_column, utcnow
from saysense.models.enums import MetricType


class AnalysisMetric(Base, UUIDMixin):
    __tablename__ = 'analysis_metrics'

    session_id = Column(String(36), ForeignKey('sessions.id', ondelete='CASCADE'), nullable=False, index=True)
    metric_type = enum_column(MetricType, nullable=False, index=True)
    value = Column(Float, nullable=False)
    timestamp = Column(Float, nullable=False)  # seconds from session start
    label = Column(String(255))
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    session = relationship("PresentationSession", back_populates="analysis_metrics")
