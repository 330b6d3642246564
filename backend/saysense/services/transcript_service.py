"""
Transcript Service
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from saysense.core.errors import InvalidRequestError, NotFoundError
from saysense.models import TranscriptSegment, User
from saysense.schemas.realtime import TranscriptUpdate, TranscriptUpdateEvent
from saysense.schemas.transcript import SegmentCreate, SegmentRead
from saysense.services.room_registry import RoomRegistry, broadcast_safely
from saysense.services.session_service import get_session_for_user

logger = logging.getLogger(__name__)


@dataclass
class TranscriptFilter:
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    speaker: Optional[str] = None
    is_final: Optional[bool] = None


def _new_segment(session_id: str, payload: SegmentCreate) -> TranscriptSegment:
    return TranscriptSegment(
        session_id=session_id,
        start_time=payload.start_time,
        end_time=payload.end_time,
        speaker_label=payload.speaker_label,
        transcript=payload.transcript,
        confidence=payload.confidence,
        highlights=payload.highlights,
        is_final=payload.is_final,
    )


def create_segment(
    db: Session,
    user: User,
    session_id: str,
    payload: SegmentCreate,
    registry: Optional[RoomRegistry] = None,
) -> SegmentRead:
    if payload.session_id != session_id:
        raise InvalidRequestError("Session ID in path does not match session ID in body")
    session = get_session_for_user(db, session_id, user.id)

    segment = _new_segment(session.id, payload)
    db.add(segment)
    db.commit()
    db.refresh(segment)

    result = SegmentRead.model_validate(segment)
    broadcast_safely(
        registry,
        session.id,
        TranscriptUpdateEvent(data=TranscriptUpdate(action="new", segment=result)),
    )
    logger.info("transcript_segment_created session_id=%s segment_id=%s", session.id, segment.id)
    return result


def create_segments_batch(
    db: Session,
    user: User,
    session_id: str,
    payloads: List[SegmentCreate],
    registry: Optional[RoomRegistry] = None,
) -> List[SegmentRead]:
    session = get_session_for_user(db, session_id, user.id)
    if not payloads:
        return []
    session_ids = {payload.session_id for payload in payloads}
    if len(session_ids) > 1:
        raise InvalidRequestError("All segments in a batch must belong to the same session")
    if session_ids != {session_id}:
        raise InvalidRequestError("Session ID in path does not match session ID in body")

    segments = [_new_segment(session.id, payload) for payload in payloads]
    db.add_all(segments)
    db.commit()
    for segment in segments:
        db.refresh(segment)

    results = [SegmentRead.model_validate(segment) for segment in segments]
    broadcast_safely(
        registry,
        session.id,
        TranscriptUpdateEvent(data=TranscriptUpdate(action="batch", segments=results)),
    )
    logger.info("transcript_segments_batch_created session_id=%s count=%d", session.id, len(results))
    return results


def list_segments(db: Session, user: User, session_id: str, filters: TranscriptFilter) -> List[SegmentRead]:
    session = get_session_for_user(db, session_id, user.id)
    query = db.query(TranscriptSegment).filter(TranscriptSegment.session_id == session.id)
    # overlap semantics: any segment touching [start_time, end_time]
    if filters.start_time is not None:
        query = query.filter(TranscriptSegment.end_time >= filters.start_time)
    if filters.end_time is not None:
        query = query.filter(TranscriptSegment.start_time <= filters.end_time)
    if filters.speaker:
        query = query.filter(TranscriptSegment.speaker_label == filters.speaker)
    if filters.is_final is not None:
        query = query.filter(TranscriptSegment.is_final.is_(filters.is_final))

    rows = query.order_by(TranscriptSegment.start_time.asc(), TranscriptSegment.created_at.asc()).all()
    return [SegmentRead.model_validate(row) for row in rows]


def _get_owned_segment(db: Session, user: User, session_id: str, segment_id: str) -> TranscriptSegment:
    session = get_session_for_user(db, session_id, user.id)
    segment = (
        db.query(TranscriptSegment)
        .filter(TranscriptSegment.id == segment_id, TranscriptSegment.session_id == session.id)
        .first()
    )
    if segment is None:
        raise NotFoundError(f"Transcript segment {segment_id} not found")
    return segment


def get_segment(db: Session, user: User, session_id: str, segment_id: str) -> SegmentRead:
    return SegmentRead.model_validate(_get_owned_segment(db, user, session_id, segment_id))


def remove_segment(
    db: Session,
    user: User,
    session_id: str,
    segment_id: str,
    registry: Optional[RoomRegistry] = None,
) -> None:
    segment = _get_owned_segment(db, user, session_id, segment_id)
    db.delete(segment)
    db.commit()
    logger.info("transcript_segment_deleted session_id=%s segment_id=%s", session_id, segment_id)
    broadcast_safely(
        registry,
        session_id,
        TranscriptUpdateEvent(data=TranscriptUpdate(action="deleted", segment_id=segment_id)),
    )
