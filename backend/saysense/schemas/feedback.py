from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, Field

from saysense.models.enums import Severity, SuggestionType
from saysense.schemas.common import CamelModel


class SuggestionCreate(CamelModel):
    type: SuggestionType
    severity: Severity = Severity.MEDIUM
    message: str = Field(min_length=1)
    start_time: Optional[float] = Field(default=None, ge=0)
    end_time: Optional[float] = Field(default=None, ge=0)
    meta: Optional[Dict[str, Any]] = Field(default=None, alias="metadata")


class SuggestionBatchCreate(CamelModel):
    suggestions: List[SuggestionCreate] = Field(min_length=1)


class SuggestionUpdate(CamelModel):
    severity: Optional[Severity] = None
    message: Optional[str] = Field(default=None, min_length=1)
    is_applied: Optional[bool] = None
    is_resolved: Optional[bool] = None
    meta: Optional[Dict[str, Any]] = Field(default=None, alias="metadata")


class SuggestionRead(CamelModel):
    id: str
    session_id: str
    type: SuggestionType
    severity: Severity
    message: str
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    is_applied: bool
    is_resolved: bool
    resolved_at: Optional[datetime] = None
    # ORM rows expose the JSON column as ``meta``; request bodies use ``metadata``
    meta: Optional[Dict[str, Any]] = Field(
        default=None,
        validation_alias=AliasChoices("meta", "metadata"),
        serialization_alias="metadata",
    )
    created_at: datetime
    updated_at: datetime


class SuggestionDeleted(CamelModel):
    id: str
    session_id: str
    deleted: Literal[True] = True


class SuggestionSummary(CamelModel):
    total: int
    by_severity: Dict[Severity, int]
