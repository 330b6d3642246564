from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from saysense.api.deps import get_current_user, get_room_registry, get_storage, get_transcription
from saysense.db.session import get_db
from saysense.models import SessionStatus, User
from saysense.schemas.session import (
    PresignedUrlRequest,
    PresignedUrlResponse,
    SessionCreate,
    SessionDetail,
    SessionRead,
    SessionUpdate,
)
from saysense.services import session_service
from saysense.services.room_registry import RoomRegistry
from saysense.services.storage_service import ObjectStorage, StorageServiceError
from saysense.services.transcribe_service import TranscriptionJobs

router = APIRouter()


@router.get("", response_model=List[SessionRead])
def list_sessions(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return session_service.list_sessions(db=db, user=user)


@router.post("", response_model=SessionRead, status_code=status.HTTP_201_CREATED)
def create_session(
    payload: SessionCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    transcription: TranscriptionJobs = Depends(get_transcription),
):
    return session_service.create_session(db=db, user=user, payload=payload, transcription=transcription)


@router.get("/filter", response_model=List[SessionRead])
def filter_sessions(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    session_status: Optional[SessionStatus] = Query(None, alias="status"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    filters = session_service.SessionFilter(start_date=start_date, end_date=end_date, status=session_status)
    return session_service.filter_sessions(db=db, user=user, filters=filters)


@router.post("/presigned-url", response_model=PresignedUrlResponse)
def create_presigned_url(
    payload: PresignedUrlRequest,
    user: User = Depends(get_current_user),
    storage: ObjectStorage = Depends(get_storage),
):
    try:
        return session_service.create_presigned_upload(storage=storage, payload=payload)
    except StorageServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@router.get("/{session_id}", response_model=SessionDetail)
def get_session(
    session_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return session_service.get_session_detail(db=db, user=user, session_id=session_id)


@router.put("/{session_id}", response_model=SessionRead)
def update_session(
    session_id: str,
    payload: SessionUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    registry: RoomRegistry = Depends(get_room_registry),
):
    return session_service.update_session(
        db=db, user=user, session_id=session_id, payload=payload, registry=registry
    )


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_session(
    session_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    registry: RoomRegistry = Depends(get_room_registry),
):
    session_service.delete_session(db=db, user=user, session_id=session_id, registry=registry)
    return None
