from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import uuid
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.websockets import WebSocketState

from saysense.api.deps import get_session_factory, get_ws_room_registry
from saysense.core.errors import NotFoundError, UnauthorizedError
from saysense.schemas.realtime import (
    CLIENT_MESSAGE_TYPES,
    AudioChunkEvent,
    AudioChunkMessage,
    AudioChunkRelay,
    JoinSessionMessage,
    LeaveSessionMessage,
    SessionUpdatedEvent,
    client_message_adapter,
    error_event,
)
from saysense.schemas.session import SessionRead
from saysense.services import auth_service, session_service
from saysense.services.room_registry import ConnectionIdentity, QueueChannel, RoomRegistry

router = APIRouter()
logger = logging.getLogger(__name__)

NOT_IN_SESSION = "NOT_IN_SESSION"
SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
INVALID_MESSAGE = "INVALID_MESSAGE"
UNSUPPORTED_EVENT = "UNSUPPORTED_EVENT"
INTERNAL_ERROR = "INTERNAL_ERROR"


def _authenticate(session_factory: Callable[[], Session], token: str) -> ConnectionIdentity:
    db = session_factory()
    try:
        user = auth_service.get_user_from_access_token(db, token)
        return ConnectionIdentity(user_id=user.id, is_guest=user.is_guest)
    finally:
        db.close()


def _load_owned_session(session_factory: Callable[[], Session], session_id: str, user_id: str) -> SessionRead:
    db = session_factory()
    try:
        return SessionRead.model_validate(session_service.get_session_for_user(db, session_id, user_id))
    finally:
        db.close()


def _validation_details(exc: ValidationError) -> Dict[str, Any]:
    return {"errors": [{"loc": list(err["loc"]), "msg": err["msg"]} for err in exc.errors()]}


async def _pump(websocket: WebSocket, channel: QueueChannel, connection_id: str) -> None:
    """Single writer per connection; keeps send order equal to delivery order."""
    try:
        while True:
            message = await channel.get()
            await websocket.send_json(message)
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.info("session_ws_send_failed connection_id=%s", connection_id, exc_info=True)


@router.websocket("/ws/sessions")
async def session_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    registry: RoomRegistry = Depends(get_ws_room_registry),
) -> None:
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Missing token")
        return
    try:
        identity = await run_in_threadpool(_authenticate, session_factory, token)
    except UnauthorizedError as exc:
        logger.info("session_ws_rejected reason=%s", exc.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.message)
        return

    await websocket.accept()
    connection_id = uuid.uuid4().hex
    channel = QueueChannel()
    registry.connect(connection_id, channel, identity)
    writer = asyncio.create_task(_pump(websocket, channel, connection_id))
    logger.info("session_ws_connected connection_id=%s user_id=%s", connection_id, identity.user_id)

    def reply_error(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        registry.send(connection_id, error_event(code, message, details))

    try:
        while True:
            frame = await websocket.receive()
            if frame.get("type") == "websocket.disconnect":
                break

            text_payload = frame.get("text")
            if text_payload is None:
                reply_error(INVALID_MESSAGE, "Binary frames are not supported")
                continue

            try:
                obj = json.loads(text_payload)
                if not isinstance(obj, dict):
                    raise ValueError("message must be a JSON object")
            except ValueError as exc:
                reply_error(INVALID_MESSAGE, str(exc))
                continue

            msg_type = str(obj.get("type") or "").strip()
            if msg_type not in CLIENT_MESSAGE_TYPES:
                reply_error(UNSUPPORTED_EVENT, f"Unsupported event: {msg_type or '<empty>'}")
                continue

            try:
                message = client_message_adapter.validate_python(obj)
            except ValidationError as exc:
                reply_error(INVALID_MESSAGE, f"Invalid {msg_type} payload", _validation_details(exc))
                continue

            try:
                if isinstance(message, JoinSessionMessage):
                    session_id = message.data.session_id
                    try:
                        snapshot = await run_in_threadpool(
                            _load_owned_session, session_factory, session_id, identity.user_id
                        )
                    except NotFoundError as exc:
                        reply_error(SESSION_NOT_FOUND, exc.message, {"sessionId": session_id})
                        continue
                    registry.join(connection_id, session_id)
                    registry.send(connection_id, SessionUpdatedEvent(data=snapshot))
                    continue

                if isinstance(message, LeaveSessionMessage):
                    registry.leave(connection_id, message.data.session_id)
                    continue

                if isinstance(message, AudioChunkMessage):
                    data = message.data
                    if not registry.is_member(connection_id, data.session_id):
                        reply_error(NOT_IN_SESSION, "You are not part of this session", {"sessionId": data.session_id})
                        continue
                    registry.relay(
                        data.session_id,
                        connection_id,
                        AudioChunkEvent(
                            data=AudioChunkRelay(
                                session_id=data.session_id,
                                user_id=identity.user_id,
                                chunk=data.chunk,
                                sample_rate=data.sample_rate,
                            )
                        ),
                    )
                    continue
            except Exception:
                logger.exception("session_ws_event_failed connection_id=%s type=%s", connection_id, msg_type)
                reply_error(INTERNAL_ERROR, "Failed to process message")
    except WebSocketDisconnect:
        pass
    finally:
        # Membership must be gone before anything below can be cancelled.
        registry.disconnect(connection_id)
        channel.close()
        writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await writer
        logger.info("session_ws_disconnected connection_id=%s", connection_id)
        if websocket.application_state == WebSocketState.CONNECTED and websocket.client_state == WebSocketState.CONNECTED:
            try:
                await websocket.close()
            except RuntimeError:
                logger.debug("session_ws_close_skipped connection_id=%s", connection_id)
