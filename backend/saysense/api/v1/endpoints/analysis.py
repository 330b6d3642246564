from typing import Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from saysense.api.deps import get_current_user, get_room_registry
from saysense.db.session import get_db
from saysense.models import MetricType, User
from saysense.schemas.analysis import MetricBatchCreate, MetricCreate, MetricRead, MetricSummary
from saysense.services import analysis_service
from saysense.services.room_registry import RoomRegistry

router = APIRouter()


@router.post("/metrics", response_model=MetricRead, status_code=status.HTTP_201_CREATED)
def create_metric(
    session_id: str,
    payload: MetricCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    registry: RoomRegistry = Depends(get_room_registry),
):
    return analysis_service.create_metric(
        db=db, user=user, session_id=session_id, payload=payload, registry=registry
    )


@router.post("/metrics/batch", response_model=List[MetricRead], status_code=status.HTTP_201_CREATED)
def create_metrics_batch(
    session_id: str,
    payload: MetricBatchCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    registry: RoomRegistry = Depends(get_room_registry),
):
    return analysis_service.create_metrics_batch(
        db=db, user=user, session_id=session_id, payloads=payload.metrics, registry=registry
    )


@router.get("/metrics", response_model=List[MetricRead])
def list_metrics(
    session_id: str,
    types: List[MetricType] = Query(default=[]),
    start_time: Optional[float] = Query(None, alias="startTime", ge=0),
    end_time: Optional[float] = Query(None, alias="endTime", ge=0),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    filters = analysis_service.MetricFilter(types=types, start_time=start_time, end_time=end_time)
    return analysis_service.list_metrics(db=db, user=user, session_id=session_id, filters=filters)


@router.get("/metrics/latest", response_model=Dict[str, MetricRead])
def get_latest_metrics(
    session_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return analysis_service.get_latest_metrics(db=db, user=user, session_id=session_id)


@router.get("/metrics/type/{metric_type}", response_model=List[MetricRead])
def get_metrics_by_type(
    session_id: str,
    metric_type: MetricType,
    limit: int = Query(100, ge=1, le=1000),
    order: Literal["asc", "desc"] = Query("desc"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return analysis_service.get_metrics_by_type(
        db=db, user=user, session_id=session_id, metric_type=metric_type, limit=limit, order=order
    )


@router.get("/summary", response_model=Dict[str, MetricSummary])
def get_metrics_summary(
    session_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return analysis_service.get_metrics_summary(db=db, user=user, session_id=session_id)


@router.delete("/metrics/{metric_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_metric(
    session_id: str,
    metric_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    registry: RoomRegistry = Depends(get_room_registry),
):
    analysis_service.remove_metric(db=db, user=user, metric_id=metric_id, registry=registry)
    return None
