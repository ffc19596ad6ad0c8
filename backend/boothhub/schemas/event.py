"""
Pydantic schemas for exhibition-event request/response validation.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import Field, model_validator

from boothhub.schemas.common import CamelModel

EventStatusLiteral = Literal["draft", "published", "active", "completed", "cancelled"]


class EventCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    venue: Optional[str] = Field(None, max_length=255)
    status: EventStatusLiteral = "draft"

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date >= self.end_date:
            raise ValueError("start date must be before end date")
        return self


class EventUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    venue: Optional[str] = Field(None, max_length=255)
    status: Optional[EventStatusLiteral] = None


class EventResponse(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    venue: Optional[str] = None
    status: str
    created_at: datetime


class EventListResponse(CamelModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False
