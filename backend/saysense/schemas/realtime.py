"""
Realtime wire protocol.

Every server frame is ``{type, data, timestamp}`` and every client frame is
``{type, data}``. Both directions are closed unions discriminated on ``type``.
"""
from __future__ import annotations

import base64
import binascii
import time
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import Field, TypeAdapter, field_validator

from saysense.schemas.analysis import MetricDeleted, MetricRead
from saysense.schemas.common import CamelModel
from saysense.schemas.feedback import SuggestionDeleted, SuggestionRead
from saysense.schemas.session import SessionDeleted, SessionRead
from saysense.schemas.transcript import SegmentRead


def now_ms() -> int:
    return int(time.time() * 1000)


def normalize_b64_payload(payload: str) -> str:
    value = (payload or "").strip()
    if "," in value and value.lower().startswith("data:"):
        return value.split(",", 1)[1].strip()
    return value


# ============================================
# Server -> client
# ============================================


class PresenceUpdate(CamelModel):
    user_id: str
    is_guest: bool
    action: Literal["joined"] = "joined"


class TranscriptUpdate(CamelModel):
    action: Literal["new", "batch", "deleted"]
    segment: Optional[SegmentRead] = None
    segments: Optional[List[SegmentRead]] = None
    segment_id: Optional[str] = None


class ErrorPayload(CamelModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


class AudioChunkRelay(CamelModel):
    session_id: str
    user_id: str
    chunk: str
    sample_rate: int


class _ServerEvent(CamelModel):
    timestamp: int = Field(default_factory=now_ms)


class SessionUpdatedEvent(_ServerEvent):
    type: Literal["session_updated"] = "session_updated"
    data: Union[SessionRead, SessionDeleted, PresenceUpdate]


class AnalysisUpdateEvent(_ServerEvent):
    type: Literal["analysis_update"] = "analysis_update"
    data: Union[MetricRead, MetricDeleted]


class TranscriptUpdateEvent(_ServerEvent):
    type: Literal["transcript_update"] = "transcript_update"
    data: TranscriptUpdate


class FeedbackUpdateEvent(_ServerEvent):
    type: Literal["feedback_update"] = "feedback_update"
    data: Union[SuggestionRead, SuggestionDeleted]


class FeedbackSuggestionEvent(_ServerEvent):
    type: Literal["feedback_suggestion"] = "feedback_suggestion"
    data: SuggestionRead


class ErrorEvent(_ServerEvent):
    type: Literal["error"] = "error"
    data: ErrorPayload


class AudioChunkEvent(_ServerEvent):
    type: Literal["audio_chunk"] = "audio_chunk"
    data: AudioChunkRelay


ServerEvent = Annotated[
    Union[
        SessionUpdatedEvent,
        AnalysisUpdateEvent,
        TranscriptUpdateEvent,
        FeedbackUpdateEvent,
        FeedbackSuggestionEvent,
        ErrorEvent,
        AudioChunkEvent,
    ],
    Field(discriminator="type"),
]

server_event_adapter: TypeAdapter = TypeAdapter(ServerEvent)


def error_event(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> ErrorEvent:
    return ErrorEvent(data=ErrorPayload(code=code, message=message, details=details))


# ============================================
# Client -> server
# ============================================


class JoinSessionData(CamelModel):
    session_id: str = Field(min_length=1)
    user_id: Optional[str] = None
    is_guest: bool = False


class LeaveSessionData(CamelModel):
    session_id: str = Field(min_length=1)


class AudioChunkData(CamelModel):
    session_id: str = Field(min_length=1)
    chunk: str = Field(min_length=1)
    sample_rate: int = Field(gt=0, le=192_000)

    @field_validator("chunk")
    @classmethod
    def _check_base64(cls, value: str) -> str:
        value = normalize_b64_payload(value)
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("chunk must be base64 encoded") from exc
        return value


class JoinSessionMessage(CamelModel):
    type: Literal["join_session"]
    data: JoinSessionData


class LeaveSessionMessage(CamelModel):
    type: Literal["leave_session"]
    data: LeaveSessionData


class AudioChunkMessage(CamelModel):
    type: Literal["audio_chunk"]
    data: AudioChunkData


ClientMessage = Annotated[
    Union[JoinSessionMessage, LeaveSessionMessage, AudioChunkMessage],
    Field(discriminator="type"),
]

CLIENT_MESSAGE_TYPES = frozenset({"join_session", "leave_session", "audio_chunk"})

client_message_adapter: TypeAdapter = TypeAdapter(ClientMessage)
