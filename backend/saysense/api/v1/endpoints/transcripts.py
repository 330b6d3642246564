from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from saysense.api.deps import get_current_user, get_room_registry
from saysense.db.session import get_db
from saysense.models import User
from saysense.schemas.transcript import SegmentBatchCreate, SegmentCreate, SegmentRead
from saysense.services import transcript_service
from saysense.services.room_registry import RoomRegistry

router = APIRouter()


@router.post("", response_model=SegmentRead, status_code=status.HTTP_201_CREATED)
def create_segment(
    session_id: str,
    payload: SegmentCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    registry: RoomRegistry = Depends(get_room_registry),
):
    return transcript_service.create_segment(
        db=db, user=user, session_id=session_id, payload=payload, registry=registry
    )


@router.post("/batch", response_model=List[SegmentRead], status_code=status.HTTP_201_CREATED)
def create_segments_batch(
    session_id: str,
    payload: SegmentBatchCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    registry: RoomRegistry = Depends(get_room_registry),
):
    return transcript_service.create_segments_batch(
        db=db, user=user, session_id=session_id, payloads=payload.segments, registry=registry
    )


@router.get("", response_model=List[SegmentRead])
def list_segments(
    session_id: str,
    start_time: Optional[float] = Query(None, alias="startTime", ge=0),
    end_time: Optional[float] = Query(None, alias="endTime", ge=0),
    speaker: Optional[str] = None,
    is_final: Optional[bool] = Query(None, alias="isFinal"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    filters = transcript_service.TranscriptFilter(
        start_time=start_time, end_time=end_time, speaker=speaker, is_final=is_final
    )
    return transcript_service.list_segments(db=db, user=user, session_id=session_id, filters=filters)


@router.get("/{segment_id}", response_model=SegmentRead)
def get_segment(
    session_id: str,
    segment_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return transcript_service.get_segment(db=db, user=user, session_id=session_id, segment_id=segment_id)


@router.delete("/{segment_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_segment(
    session_id: str,
    segment_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    registry: RoomRegistry = Depends(get_room_registry),
):
    transcript_service.remove_segment(
        db=db, user=user, session_id=session_id, segment_id=segment_id, registry=registry
    )
    return None
