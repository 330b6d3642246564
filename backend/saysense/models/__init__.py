from saysense.db.base import Base
from saysense.models.analysis import AnalysisMetric
from saysense.models.enums import (
    MetricType,
    SessionStatus,
    SessionType,
    Severity,
    SourceType,
    SuggestionType,
    UserRole,
)
from saysense.models.feedback import FeedbackSuggestion
from saysense.models.session import Participant, PresentationSession
from saysense.models.transcript import TranscriptSegment
from saysense.models.user import User

__all__ = [
    "Base",
    "User",
    "PresentationSession",
    "Participant",
    "TranscriptSegment",
    "AnalysisMetric",
    "FeedbackSuggestion",
    "UserRole",
    "SessionType",
    "SourceType",
    "SessionStatus",
    "MetricType",
    "SuggestionType",
    "Severity",
]
