from typing import Callable, Optional

from fastapi import Depends, Request, WebSocket
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from saysense.core.errors import UnauthorizedError
from saysense.db.session import SessionLocal, get_db
from saysense.models import User
from saysense.services import auth_service
from saysense.services.ai_service import AiService, get_ai_service
from saysense.services.room_registry import RoomRegistry
from saysense.services.storage_service import ObjectStorage, get_object_storage
from saysense.services.transcribe_service import TranscriptionJobs, get_transcription_jobs

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Missing bearer token")
    return auth_service.get_user_from_access_token(db, credentials.credentials)


def get_room_registry(request: Request) -> RoomRegistry:
    return request.app.state.room_registry


def get_storage() -> ObjectStorage:
    return get_object_storage()


def get_transcription() -> TranscriptionJobs:
    return get_transcription_jobs()


def get_ai() -> AiService:
    return get_ai_service()


def get_session_factory() -> Callable[[], Session]:
    return SessionLocal


def get_ws_room_registry(websocket: WebSocket) -> RoomRegistry:
    return websocket.app.state.room_registry
