from datetime import datetime
from typing import Optional

from pydantic import Field

from boothhub.schemas.common import CamelModel


class ProposalCreate(CamelModel):
    event_id: int
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    template_id: Optional[int] = None


class ProposalResponse(CamelModel):
    id: int
    event_id: int
    title: str
    description: Optional[str] = None
    template_id: Optional[int] = None
    status: str
    created_by: Optional[int] = None
    submitted_by: Optional[int] = None
    submitted_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    created_at: datetime


class TemplateCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    content: str = Field(..., min_length=1)
    category: Optional[str] = Field(None, max_length=100)


class TemplateResponse(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    content: str
    category: Optional[str] = None
    is_active: bool
    created_at: datetime
