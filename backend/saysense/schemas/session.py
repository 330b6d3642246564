from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from saysense.models.enums import SessionStatus, SessionType, SourceType
from saysense.schemas.common import CamelModel


class SessionCreate(CamelModel):
    title: str = Field(min_length=1, max_length=255)
    session_type: SessionType
    source_type: SourceType
    source_url: Optional[str] = None
    language: str = "en-US"
    tags: List[str] = Field(default_factory=list)


class SessionUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    source_url: Optional[str] = None
    status: Optional[SessionStatus] = None
    duration_sec: Optional[int] = Field(default=None, ge=0)
    summary: Optional[str] = None
    sentiment: Optional[float] = None
    tags: Optional[List[str]] = None


class SessionRead(CamelModel):
    id: str
    user_id: str
    title: str
    session_type: SessionType
    source_type: SourceType
    source_url: Optional[str] = None
    language: str
    status: SessionStatus
    duration_sec: int
    completed_at: Optional[datetime] = None
    summary: Optional[str] = None
    sentiment: float
    tags: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class SessionDeleted(CamelModel):
    id: str
    deleted: Literal[True] = True


class ParticipantRead(CamelModel):
    name: str
    role: str


class DetailTranscriptItem(CamelModel):
    speaker: str
    text: str
    timestamp: str
    sentiment: float
    confidence: float
    highlights: List[str] = Field(default_factory=list)


class SessionDetail(CamelModel):
    id: str
    name: str
    date: str
    duration: int
    status: SessionStatus
    sentiment: float
    participants: List[ParticipantRead]
    tags: List[str]
    summary: str
    transcript: List[DetailTranscriptItem]


class PresignedUrlRequest(CamelModel):
    file_name: str = Field(min_length=1, max_length=512)
    file_type: str = Field(min_length=1, max_length=255)


class PresignedUrlResponse(CamelModel):
    url: str
    key: str
