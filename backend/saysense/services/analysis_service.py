"""
Analysis Service
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional

from sqlalchemy.orm import Session

from saysense.core.errors import ForbiddenError, NotFoundError
from saysense.models import AnalysisMetric, MetricType, PresentationSession, User
from saysense.schemas.analysis import MetricCreate, MetricDeleted, MetricRead, MetricSummary
from saysense.schemas.realtime import AnalysisUpdateEvent
from saysense.services.room_registry import RoomRegistry, broadcast_safely
from saysense.services.session_service import get_session_for_user

logger = logging.getLogger(__name__)


@dataclass
class MetricFilter:
    types: List[MetricType] = field(default_factory=list)
    start_time: Optional[float] = None
    end_time: Optional[float] = None


def _new_metric(session_id: str, payload: MetricCreate) -> AnalysisMetric:
    return AnalysisMetric(
        session_id=session_id,
        metric_type=payload.metric_type,
        value=payload.value,
        timestamp=payload.timestamp,
        label=payload.label,
    )


def create_metric(
    db: Session,
    user: User,
    session_id: str,
    payload: MetricCreate,
    registry: Optional[RoomRegistry] = None,
) -> MetricRead:
    session = get_session_for_user(db, session_id, user.id)
    metric = _new_metric(session.id, payload)
    db.add(metric)
    db.commit()
    db.refresh(metric)

    result = MetricRead.model_validate(metric)
    recipients = broadcast_safely(registry, session.id, AnalysisUpdateEvent(data=result))
    logger.info(
        "analysis_metric_created session_id=%s type=%s recipients=%d",
        session.id,
        metric.metric_type.value,
        recipients,
    )
    return result


def create_metrics_batch(
    db: Session,
    user: User,
    session_id: str,
    payloads: List[MetricCreate],
    registry: Optional[RoomRegistry] = None,
) -> List[MetricRead]:
    session = get_session_for_user(db, session_id, user.id)
    metrics = [_new_metric(session.id, payload) for payload in payloads]
    db.add_all(metrics)
    db.commit()
    for metric in metrics:
        db.refresh(metric)

    results = [MetricRead.model_validate(metric) for metric in metrics]
    for result in results:
        broadcast_safely(registry, session.id, AnalysisUpdateEvent(data=result))
    logger.info("analysis_metrics_batch_created session_id=%s count=%d", session.id, len(results))
    return results


def list_metrics(db: Session, user: User, session_id: str, filters: MetricFilter) -> List[MetricRead]:
    session = get_session_for_user(db, session_id, user.id)
    query = db.query(AnalysisMetric).filter(AnalysisMetric.session_id == session.id)
    if filters.types:
        query = query.filter(AnalysisMetric.metric_type.in_(filters.types))
    if filters.start_time is not None:
        query = query.filter(AnalysisMetric.timestamp >= filters.start_time)
    if filters.end_time is not None:
        query = query.filter(AnalysisMetric.timestamp <= filters.end_time)

    rows = query.order_by(AnalysisMetric.timestamp.asc(), AnalysisMetric.created_at.asc()).all()
    return [MetricRead.model_validate(row) for row in rows]


def get_metrics_summary(db: Session, user: User, session_id: str) -> Dict[str, MetricSummary]:
    session = get_session_for_user(db, session_id, user.id)
    grouped: Dict[str, List[float]] = {}
    for metric in db.query(AnalysisMetric).filter(AnalysisMetric.session_id == session.id):
        grouped.setdefault(metric.metric_type.value, []).append(metric.value)

    return {
        metric_type: MetricSummary(
            average=sum(values) / len(values),
            min=min(values),
            max=max(values),
            count=len(values),
        )
        for metric_type, values in grouped.items()
    }


def get_metrics_by_type(
    db: Session,
    user: User,
    session_id: str,
    metric_type: MetricType,
    limit: int = 100,
    order: Literal["asc", "desc"] = "desc",
) -> List[MetricRead]:
    session = get_session_for_user(db, session_id, user.id)
    ordering = AnalysisMetric.timestamp.desc() if order == "desc" else AnalysisMetric.timestamp.asc()
    rows = (
        db.query(AnalysisMetric)
        .filter(AnalysisMetric.session_id == session.id, AnalysisMetric.metric_type == metric_type)
        .order_by(ordering)
        .limit(limit)
        .all()
    )
    return [MetricRead.model_validate(row) for row in rows]


def get_latest_metrics(db: Session, user: User, session_id: str) -> Dict[str, MetricRead]:
    """Most recent metric (by timestamp) for each metric type present."""
    session = get_session_for_user(db, session_id, user.id)
    rows = (
        db.query(AnalysisMetric)
        .filter(AnalysisMetric.session_id == session.id)
        .order_by(AnalysisMetric.timestamp.desc(), AnalysisMetric.created_at.desc())
        .all()
    )
    latest: Dict[str, MetricRead] = {}
    for row in rows:
        latest.setdefault(row.metric_type.value, MetricRead.model_validate(row))
    return latest


def remove_metric(
    db: Session,
    user: User,
    metric_id: str,
    registry: Optional[RoomRegistry] = None,
) -> None:
    # Removal distinguishes a missing metric from one owned by someone else.
    row = (
        db.query(AnalysisMetric, PresentationSession)
        .join(PresentationSession, AnalysisMetric.session_id == PresentationSession.id)
        .filter(AnalysisMetric.id == metric_id, PresentationSession.deleted_at.is_(None))
        .first()
    )
    if row is None:
        raise NotFoundError(f"Metric {metric_id} not found")
    metric, session = row
    if session.user_id != user.id:
        raise ForbiddenError("You do not have permission to delete this metric")

    deleted = MetricDeleted(id=metric.id, session_id=session.id, metric_type=metric.metric_type)
    db.delete(metric)
    db.commit()
    logger.info("analysis_metric_deleted session_id=%s metric_id=%s", session.id, metric_id)
    broadcast_safely(registry, session.id, AnalysisUpdateEvent(data=deleted))
