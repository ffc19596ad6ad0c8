from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from boothhub.schemas.common import CamelModel


class MetricCreate(CamelModel):
    event_id: Optional[int] = None
    metric_type: str = Field(..., min_length=1, max_length=50)
    metric_name: str = Field(..., min_length=1, max_length=100)
    value: float
    meta: Optional[dict[str, Any]] = None


class MetricResponse(CamelModel):
    id: int
    event_id: Optional[int] = None
    metric_type: str
    metric_name: str
    value: float
    meta: Optional[dict[str, Any]] = None
    recorded_at: datetime


class ActivityCreate(CamelModel):
    event_id: Optional[int] = None
    action_type: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None
    meta: Optional[dict[str, Any]] = None


class ActivityResponse(CamelModel):
    id: int
    user_id: Optional[int] = None
    event_id: Optional[int] = None
    action_type: str
    description: Optional[str] = None
    meta: Optional[dict[str, Any]] = None
    created_at: datetime
