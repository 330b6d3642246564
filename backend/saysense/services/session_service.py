"""
Session Service
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from saysense.core.errors import InvalidRequestError, NotFoundError
from saysense.db.base import utcnow
from saysense.models import (
    AnalysisMetric,
    MetricType,
    Participant,
    PresentationSession,
    SessionStatus,
    TranscriptSegment,
    User,
)
from saysense.schemas.realtime import SessionUpdatedEvent
from saysense.schemas.session import (
    DetailTranscriptItem,
    ParticipantRead,
    PresignedUrlRequest,
    PresignedUrlResponse,
    SessionCreate,
    SessionDeleted,
    SessionDetail,
    SessionRead,
    SessionUpdate,
)
from saysense.services.room_registry import RoomRegistry, broadcast_safely
from saysense.services.storage_service import ObjectStorage
from saysense.services.transcribe_service import (
    TranscriptionJobs,
    TranscriptionServiceError,
    job_name_for_session,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_SPEAKER = "Self"
PLACEHOLDER_TEXT = "Processing..."
TONE_MATCH_WINDOW_SEC = 1.5
DEFAULT_SEGMENT_SENTIMENT = 3.5
DEFAULT_SEGMENT_CONFIDENCE = 0.9

_TERMINAL = {SessionStatus.COMPLETED, SessionStatus.FAILED}
_NON_NULL_FIELDS = {"title", "duration_sec", "sentiment", "tags"}


@dataclass
class SessionFilter:
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[SessionStatus] = None


def get_session_for_user(db: Session, session_id: str, user_id: str) -> PresentationSession:
    """Owned, non-deleted session or NotFound (never Forbidden)."""
    session = (
        db.query(PresentationSession)
        .filter(
            PresentationSession.id == session_id,
            PresentationSession.user_id == user_id,
            PresentationSession.deleted_at.is_(None),
        )
        .first()
    )
    if session is None:
        raise NotFoundError(f"Session {session_id} not found")
    return session


def create_session(
    db: Session,
    user: User,
    payload: SessionCreate,
    transcription: Optional[TranscriptionJobs] = None,
) -> SessionRead:
    session = PresentationSession(
        user_id=user.id,
        title=payload.title,
        session_type=payload.session_type,
        source_type=payload.source_type,
        source_url=payload.source_url,
        language=payload.language,
        status=SessionStatus.PROCESSING,
        duration_sec=0,
        sentiment=0.0,
        tags=list(payload.tags),
    )
    session.participants.append(Participant(name=user.name, role=PLACEHOLDER_SPEAKER))
    session.transcript_segments.append(
        TranscriptSegment(
            start_time=0.0,
            end_time=0.0,
            speaker_label=PLACEHOLDER_SPEAKER,
            transcript=PLACEHOLDER_TEXT,
            is_final=False,
        )
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info("session_created session_id=%s user_id=%s type=%s", session.id, user.id, session.session_type.value)

    if session.source_url and transcription is not None:
        _start_transcription(transcription, session)

    return SessionRead.model_validate(session)


def _start_transcription(transcription: TranscriptionJobs, session: PresentationSession) -> None:
    job_name = job_name_for_session(session.id)
    try:
        transcription.start_transcription_job(job_name, session.language, session.source_url)
    except TranscriptionServiceError:
        logger.warning("transcription_job_failed session_id=%s job_name=%s", session.id, job_name, exc_info=True)


def list_sessions(db: Session, user: User) -> List[SessionRead]:
    return filter_sessions(db=db, user=user, filters=SessionFilter())


def filter_sessions(db: Session, user: User, filters: SessionFilter) -> List[SessionRead]:
    query = db.query(PresentationSession).filter(
        PresentationSession.user_id == user.id,
        PresentationSession.deleted_at.is_(None),
    )
    if filters.start_date is not None:
        query = query.filter(PresentationSession.created_at >= filters.start_date)
    if filters.end_date is not None:
        query = query.filter(PresentationSession.created_at <= filters.end_date)
    if filters.status is not None:
        query = query.filter(PresentationSession.status == filters.status)

    rows = query.order_by(PresentationSession.created_at.desc()).all()
    return [SessionRead.model_validate(row) for row in rows]


def get_session_detail(db: Session, user: User, session_id: str) -> SessionDetail:
    session = get_session_for_user(db, session_id, user.id)

    tone_metrics = (
        db.query(AnalysisMetric)
        .filter(AnalysisMetric.session_id == session.id, AnalysisMetric.metric_type == MetricType.TONE)
        .order_by(AnalysisMetric.timestamp.asc())
        .all()
    )
    if tone_metrics:
        sentiment = round(sum(m.value for m in tone_metrics) / len(tone_metrics), 1)
    else:
        sentiment = round(session.sentiment or 0.0, 1)

    base_time = session.completed_at or session.created_at
    transcript = [
        DetailTranscriptItem(
            speaker=seg.speaker_label,
            text=seg.transcript,
            timestamp=(base_time + timedelta(seconds=seg.start_time)).isoformat(),
            sentiment=_nearest_tone(tone_metrics, seg.start_time),
            confidence=seg.confidence if seg.confidence is not None else DEFAULT_SEGMENT_CONFIDENCE,
            highlights=list(seg.highlights or []),
        )
        for seg in session.transcript_segments
    ]

    return SessionDetail(
        id=session.id,
        name=session.title,
        date=session.created_at.isoformat(),
        duration=session.duration_sec,
        status=session.status,
        sentiment=sentiment,
        participants=[ParticipantRead(name=p.name, role=p.role) for p in session.participants],
        tags=list(session.tags or []),
        summary=session.summary or "",
        transcript=transcript,
    )


def _nearest_tone(tone_metrics: List[AnalysisMetric], at: float) -> float:
    best: Optional[AnalysisMetric] = None
    for metric in tone_metrics:
        distance = abs(metric.timestamp - at)
        if distance > TONE_MATCH_WINDOW_SEC:
            continue
        if best is None or distance < abs(best.timestamp - at):
            best = metric
    return best.value if best is not None else DEFAULT_SEGMENT_SENTIMENT


def update_session(
    db: Session,
    user: User,
    session_id: str,
    payload: SessionUpdate,
    registry: Optional[RoomRegistry] = None,
) -> SessionRead:
    session = get_session_for_user(db, session_id, user.id)
    changes = payload.model_dump(exclude_unset=True)

    new_status = changes.pop("status", None)
    if new_status is not None:
        _apply_status(session, SessionStatus(new_status))

    for field_name, value in changes.items():
        if value is None and field_name in _NON_NULL_FIELDS:
            continue
        setattr(session, field_name, value)

    db.commit()
    db.refresh(session)
    logger.info("session_updated session_id=%s fields=%s", session.id, ",".join(sorted(payload.model_fields_set)))

    result = SessionRead.model_validate(session)
    broadcast_safely(registry, session.id, SessionUpdatedEvent(data=result))
    return result


def _apply_status(session: PresentationSession, new_status: SessionStatus) -> None:
    current = session.status
    if new_status == current:
        return
    if current in _TERMINAL or new_status == SessionStatus.PROCESSING:
        raise InvalidRequestError(f"Cannot change session status from {current.value} to {new_status.value}")
    session.status = new_status
    if new_status == SessionStatus.COMPLETED:
        session.completed_at = utcnow()
    else:
        session.completed_at = None


def delete_session(
    db: Session,
    user: User,
    session_id: str,
    registry: Optional[RoomRegistry] = None,
) -> None:
    session = get_session_for_user(db, session_id, user.id)
    session.deleted_at = utcnow()
    db.commit()
    logger.info("session_deleted session_id=%s user_id=%s", session.id, user.id)
    broadcast_safely(registry, session.id, SessionUpdatedEvent(data=SessionDeleted(id=session.id)))


def create_presigned_upload(storage: ObjectStorage, payload: PresignedUrlRequest) -> PresignedUrlResponse:
    result = storage.get_presigned_upload_url(payload.file_name, payload.file_type)
    return PresignedUrlResponse(url=result["url"], key=result["key"])
