from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from saysense.models.enums import MetricType
from saysense.schemas.common import CamelModel


class MetricCreate(CamelModel):
    metric_type: MetricType
    value: float
    timestamp: float = Field(ge=0)
    label: Optional[str] = Field(default=None, max_length=255)


class MetricBatchCreate(CamelModel):
    metrics: List[MetricCreate] = Field(min_length=1)


class MetricRead(CamelModel):
    id: str
    session_id: str
    metric_type: MetricType
    value: float
    timestamp: float
    label: Optional[str] = None
    created_at: datetime


class MetricDeleted(CamelModel):
    id: str
    session_id: str
    metric_type: MetricType
    deleted: Literal[True] = True


class MetricSummary(CamelModel):
    average: float
    min: float
    max: float
    count: int
