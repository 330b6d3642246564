import pytest
from pydantic import ValidationError

from saysense.schemas.realtime import (
    AudioChunkMessage,
    JoinSessionMessage,
    LeaveSessionMessage,
    PresenceUpdate,
    SessionUpdatedEvent,
    client_message_adapter,
    error_event,
    server_event_adapter,
)


def test_parse_join_session_camel_case() -> None:
    msg = client_message_adapter.validate_python(
        {"type": "join_session", "data": {"sessionId": "s1", "userId": "u1", "isGuest": True}}
    )
    assert isinstance(msg, JoinSessionMessage)
    assert msg.data.session_id == "s1"
    assert msg.data.is_guest is True


def test_parse_leave_session() -> None:
    msg = client_message_adapter.validate_python({"type": "leave_session", "data": {"sessionId": "s1"}})
    assert isinstance(msg, LeaveSessionMessage)


def test_audio_chunk_strips_data_url_prefix() -> None:
    msg = client_message_adapter.validate_python(
        {
            "type": "audio_chunk",
            "data": {"sessionId": "s1", "chunk": "data:audio/wav;base64,AAAA", "sampleRate": 16000},
        }
    )
    assert isinstance(msg, AudioChunkMessage)
    assert msg.data.chunk == "AAAA"


@pytest.mark.parametrize(
    "payload",
    [
        {"type": "audio_chunk", "data": {"sessionId": "s1", "chunk": "not base64!!", "sampleRate": 16000}},
        {"type": "audio_chunk", "data": {"sessionId": "s1", "chunk": "AAAA", "sampleRate": 0}},
        {"type": "join_session", "data": {}},
        {"type": "subscribe", "data": {"sessionId": "s1"}},
    ],
)
def test_invalid_client_messages_rejected(payload) -> None:
    with pytest.raises(ValidationError):
        client_message_adapter.validate_python(payload)


def test_server_event_envelope_shape() -> None:
    event = SessionUpdatedEvent(data=PresenceUpdate(user_id="u1", is_guest=False))
    dumped = event.model_dump(mode="json", by_alias=True)

    assert dumped["type"] == "session_updated"
    assert dumped["data"] == {"userId": "u1", "isGuest": False, "action": "joined"}
    assert isinstance(dumped["timestamp"], int)

    parsed = server_event_adapter.validate_python(dumped)
    assert isinstance(parsed, SessionUpdatedEvent)


def test_error_event_details_optional() -> None:
    dumped = error_event("NOT_IN_SESSION", "You are not part of this session").model_dump(mode="json", by_alias=True)
    assert dumped["type"] == "error"
    assert dumped["data"] == {"code": "NOT_IN_SESSION", "message": "You are not part of this session", "details": None}
