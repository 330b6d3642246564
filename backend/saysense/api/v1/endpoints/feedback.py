from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from saysense.api.deps import get_ai, get_current_user, get_room_registry
from saysense.db.session import get_db
from saysense.models import Severity, SuggestionType, User
from saysense.schemas.feedback import (
    SuggestionBatchCreate,
    SuggestionCreate,
    SuggestionRead,
    SuggestionSummary,
    SuggestionUpdate,
)
from saysense.services import feedback_service
from saysense.services.ai_service import AiService
from saysense.services.room_registry import RoomRegistry

router = APIRouter()


@router.post("/suggestions", response_model=SuggestionRead, status_code=status.HTTP_201_CREATED)
def create_suggestion(
    session_id: str,
    payload: SuggestionCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    registry: RoomRegistry = Depends(get_room_registry),
):
    return feedback_service.create_suggestion(
        db=db, user=user, session_id=session_id, payload=payload, registry=registry
    )


@router.post("/suggestions/batch", response_model=List[SuggestionRead], status_code=status.HTTP_201_CREATED)
def create_suggestions_batch(
    session_id: str,
    payload: SuggestionBatchCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    registry: RoomRegistry = Depends(get_room_registry),
):
    return feedback_service.create_suggestions_batch(
        db=db, user=user, session_id=session_id, payloads=payload.suggestions, registry=registry
    )


@router.get("/suggestions", response_model=List[SuggestionRead])
def list_suggestions(
    session_id: str,
    types: List[SuggestionType] = Query(default=[]),
    severities: List[Severity] = Query(default=[]),
    is_resolved: Optional[bool] = Query(None, alias="isResolved"),
    start_time: Optional[float] = Query(None, alias="startTime", ge=0),
    end_time: Optional[float] = Query(None, alias="endTime", ge=0),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    filters = feedback_service.SuggestionFilter(
        types=types,
        severities=severities,
        is_resolved=is_resolved,
        start_time=start_time,
        end_time=end_time,
    )
    return feedback_service.list_suggestions(db=db, user=user, session_id=session_id, filters=filters)


@router.get("/summary", response_model=Dict[str, SuggestionSummary])
def get_suggestions_summary(
    session_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return feedback_service.get_suggestions_summary(db=db, user=user, session_id=session_id)


@router.post("/generate", response_model=List[SuggestionRead], status_code=status.HTTP_201_CREATED)
def generate_suggestions(
    session_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    registry: RoomRegistry = Depends(get_room_registry),
    ai: AiService = Depends(get_ai),
):
    return feedback_service.generate_suggestions(
        db=db, user=user, session_id=session_id, ai=ai, registry=registry
    )


@router.get("/suggestions/{suggestion_id}", response_model=SuggestionRead)
def get_suggestion(
    session_id: str,
    suggestion_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return feedback_service.get_suggestion(db=db, user=user, session_id=session_id, suggestion_id=suggestion_id)


@router.patch("/suggestions/{suggestion_id}", response_model=SuggestionRead)
def update_suggestion(
    session_id: str,
    suggestion_id: str,
    payload: SuggestionUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    registry: RoomRegistry = Depends(get_room_registry),
):
    return feedback_service.update_suggestion(
        db=db,
        user=user,
        session_id=session_id,
        suggestion_id=suggestion_id,
        payload=payload,
        registry=registry,
    )


@router.delete("/suggestions/{suggestion_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_suggestion(
    session_id: str,
    suggestion_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    registry: RoomRegistry = Depends(get_room_registry),
):
    feedback_service.remove_suggestion(db=db, user=user, suggestion_id=suggestion_id, registry=registry)
    return None
