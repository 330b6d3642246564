from datetime import datetime
from typing import List, Optional

from pydantic import Field, model_validator

from saysense.schemas.common import CamelModel


class SegmentCreate(CamelModel):
    session_id: str
    start_time: float = Field(ge=0)
    end_time: float = Field(ge=0)
    speaker_label: str = Field(min_length=1, max_length=128)
    transcript: str
    confidence: Optional[float] = Field(default=None, ge=0, le=1)
    highlights: Optional[List[str]] = None
    is_final: bool = True

    @model_validator(mode="after")
    def _check_range(self) -> "SegmentCreate":
        if self.end_time < self.start_time:
            raise ValueError("endTime must not be before startTime")
        return self


class SegmentBatchCreate(CamelModel):
    segments: List[SegmentCreate]


class SegmentRead(CamelModel):
    id: str
    session_id: str
    start_time: float
    end_time: float
    speaker_label: str
    transcript: str
    confidence: Optional[float] = None
    highlights: Optional[List[str]] = None
    is_final: bool
    created_at: datetime
