"""
Feedback Service
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from saysense.core.errors import ForbiddenError, NotFoundError
from saysense.db.base import utcnow
from saysense.models import (
    AnalysisMetric,
    FeedbackSuggestion,
    PresentationSession,
    Severity,
    SuggestionType,
    User,
)
from saysense.schemas.feedback import (
    SuggestionCreate,
    SuggestionDeleted,
    SuggestionRead,
    SuggestionSummary,
    SuggestionUpdate,
)
from saysense.schemas.realtime import FeedbackSuggestionEvent, FeedbackUpdateEvent
from saysense.services.ai_service import AiService, MetricSample
from saysense.services.room_registry import RoomRegistry, broadcast_safely
from saysense.services.session_service import PLACEHOLDER_TEXT, get_session_for_user

logger = logging.getLogger(__name__)


@dataclass
class SuggestionFilter:
    types: List[SuggestionType] = field(default_factory=list)
    severities: List[Severity] = field(default_factory=list)
    is_resolved: Optional[bool] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None


def _new_suggestion(session_id: str, payload: SuggestionCreate) -> FeedbackSuggestion:
    return FeedbackSuggestion(
        session_id=session_id,
        type=payload.type,
        severity=payload.severity,
        message=payload.message,
        start_time=payload.start_time,
        end_time=payload.end_time,
        meta=payload.meta,
    )


def _persist_and_announce(
    db: Session,
    session_id: str,
    payloads: List[SuggestionCreate],
    registry: Optional[RoomRegistry],
) -> List[SuggestionRead]:
    suggestions = [_new_suggestion(session_id, payload) for payload in payloads]
    db.add_all(suggestions)
    db.commit()
    for suggestion in suggestions:
        db.refresh(suggestion)

    results = [SuggestionRead.model_validate(s) for s in suggestions]
    for result in results:
        broadcast_safely(registry, session_id, FeedbackSuggestionEvent(data=result))
    return results


def _get_owned_suggestion(db: Session, user: User, session_id: str, suggestion_id: str) -> FeedbackSuggestion:
    session = get_session_for_user(db, session_id, user.id)
    suggestion = (
        db.query(FeedbackSuggestion)
        .filter(FeedbackSuggestion.id == suggestion_id, FeedbackSuggestion.session_id == session.id)
        .first()
    )
    if suggestion is None:
        raise NotFoundError(f"Suggestion {suggestion_id} not found")
    return suggestion


def create_suggestion(
    db: Session,
    user: User,
    session_id: str,
    payload: SuggestionCreate,
    registry: Optional[RoomRegistry] = None,
) -> SuggestionRead:
    session = get_session_for_user(db, session_id, user.id)
    (result,) = _persist_and_announce(db, session.id, [payload], registry)
    logger.info("feedback_suggestion_created session_id=%s type=%s", session.id, result.type.value)
    return result


def create_suggestions_batch(
    db: Session,
    user: User,
    session_id: str,
    payloads: List[SuggestionCreate],
    registry: Optional[RoomRegistry] = None,
) -> List[SuggestionRead]:
    session = get_session_for_user(db, session_id, user.id)
    results = _persist_and_announce(db, session.id, payloads, registry)
    logger.info("feedback_suggestions_batch_created session_id=%s count=%d", session.id, len(results))
    return results


def list_suggestions(db: Session, user: User, session_id: str, filters: SuggestionFilter) -> List[SuggestionRead]:
    session = get_session_for_user(db, session_id, user.id)
    query = db.query(FeedbackSuggestion).filter(FeedbackSuggestion.session_id == session.id)
    if filters.types:
        query = query.filter(FeedbackSuggestion.type.in_(filters.types))
    if filters.severities:
        query = query.filter(FeedbackSuggestion.severity.in_(filters.severities))
    if filters.is_resolved is not None:
        query = query.filter(FeedbackSuggestion.is_resolved.is_(filters.is_resolved))
    if filters.start_time is not None:
        query = query.filter(FeedbackSuggestion.start_time >= filters.start_time)
    if filters.end_time is not None:
        query = query.filter(FeedbackSuggestion.end_time <= filters.end_time)

    rows = query.order_by(FeedbackSuggestion.created_at.desc()).all()
    return [SuggestionRead.model_validate(row) for row in rows]


def get_suggestion(db: Session, user: User, session_id: str, suggestion_id: str) -> SuggestionRead:
    return SuggestionRead.model_validate(_get_owned_suggestion(db, user, session_id, suggestion_id))


def update_suggestion(
    db: Session,
    user: User,
    session_id: str,
    suggestion_id: str,
    payload: SuggestionUpdate,
    registry: Optional[RoomRegistry] = None,
) -> SuggestionRead:
    suggestion = _get_owned_suggestion(db, user, session_id, suggestion_id)
    changes = payload.model_dump(exclude_unset=True)

    if "is_resolved" in changes and changes["is_resolved"] is not None:
        resolved = bool(changes.pop("is_resolved"))
        if resolved and not suggestion.is_resolved:
            suggestion.resolved_at = utcnow()
        elif not resolved:
            suggestion.resolved_at = None
        suggestion.is_resolved = resolved

    for field_name, value in changes.items():
        if value is None and field_name != "meta":
            continue
        setattr(suggestion, field_name, value)

    db.commit()
    db.refresh(suggestion)
    logger.info("feedback_suggestion_updated session_id=%s suggestion_id=%s", suggestion.session_id, suggestion.id)

    result = SuggestionRead.model_validate(suggestion)
    broadcast_safely(registry, suggestion.session_id, FeedbackUpdateEvent(data=result))
    return result


def remove_suggestion(
    db: Session,
    user: User,
    suggestion_id: str,
    registry: Optional[RoomRegistry] = None,
) -> None:
    # Removal distinguishes a missing suggestion from one owned by someone else.
    row = (
        db.query(FeedbackSuggestion, PresentationSession)
        .join(PresentationSession, FeedbackSuggestion.session_id == PresentationSession.id)
        .filter(FeedbackSuggestion.id == suggestion_id, PresentationSession.deleted_at.is_(None))
        .first()
    )
    if row is None:
        raise NotFoundError(f"Suggestion {suggestion_id} not found")
    suggestion, session = row
    if session.user_id != user.id:
        raise ForbiddenError("You do not have permission to delete this suggestion")

    db.delete(suggestion)
    db.commit()
    logger.info("feedback_suggestion_deleted session_id=%s suggestion_id=%s", session.id, suggestion_id)
    broadcast_safely(
        registry,
        session.id,
        FeedbackUpdateEvent(data=SuggestionDeleted(id=suggestion_id, session_id=session.id)),
    )


def get_suggestions_summary(db: Session, user: User, session_id: str) -> Dict[str, SuggestionSummary]:
    session = get_session_for_user(db, session_id, user.id)
    summary: Dict[str, SuggestionSummary] = {}
    for suggestion in db.query(FeedbackSuggestion).filter(FeedbackSuggestion.session_id == session.id):
        entry = summary.setdefault(suggestion.type.value, SuggestionSummary(total=0, by_severity={}))
        entry.total += 1
        entry.by_severity[suggestion.severity] = entry.by_severity.get(suggestion.severity, 0) + 1
    return summary


def generate_suggestions(
    db: Session,
    user: User,
    session_id: str,
    ai: AiService,
    registry: Optional[RoomRegistry] = None,
) -> List[SuggestionRead]:
    """Score the session transcript and metrics, then store what the scorer suggests."""
    session = get_session_for_user(db, session_id, user.id)
    transcript = " ".join(
        seg.transcript for seg in session.transcript_segments if seg.transcript != PLACEHOLDER_TEXT
    )
    metrics = [
        MetricSample(metric_type=m.metric_type, value=m.value, timestamp=m.timestamp)
        for m in db.query(AnalysisMetric).filter(AnalysisMetric.session_id == session.id)
    ]

    payloads = ai.generate_feedback(transcript, metrics, duration_sec=session.duration_sec)
    if not payloads:
        logger.info("feedback_generation_empty session_id=%s", session.id)
        return []
    results = _persist_and_announce(db, session.id, payloads, registry)
    logger.info("feedback_generated session_id=%s count=%d", session.id, len(results))
    return results
