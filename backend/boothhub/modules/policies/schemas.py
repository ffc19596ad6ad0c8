from datetime import datetime
from typing import Optional

from pydantic import Field, model_validator

from boothhub.schemas.common import CamelModel


class PolicyCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=100)
    version: str = Field("1.0", max_length=20)
    effective_date: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @model_validator(mode="after")
    def validate_window(self):
        if self.effective_date and self.expires_at and self.expires_at <= self.effective_date:
            raise ValueError("expiresAt must be after effectiveDate")
        return self


class PolicyUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    version: Optional[str] = Field(None, max_length=20)
    effective_date: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class PolicyResponse(CamelModel):
    id: int
    title: str
    content: str
    category: str
    version: str
    is_active: bool
    effective_date: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
