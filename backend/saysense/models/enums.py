import enum


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class SessionType(str, enum.Enum):
    LIVE = "live"
    UPLOAD = "upload"


class SourceType(str, enum.Enum):
    MICROPHONE = "microphone"
    FILE = "file"


class SessionStatus(str, enum.Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class MetricType(str, enum.Enum):
    TONE = "tone"
    CLARITY = "clarity"
    ENERGY = "energy"
    SENTIMENT = "sentiment"
    PAUSE = "pause"
    SPEED = "speed"


class SuggestionType(str, enum.Enum):
    TONE = "tone"
    PACING = "pacing"
    CLARITY = "clarity"
    VOCABULARY = "vocabulary"
    PAUSE = "pause"
    EMPHASIS = "emphasis"


class Severity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
