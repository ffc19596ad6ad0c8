"""
Sales module schemas: floor plans.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from boothhub.schemas.common import CamelModel


class Zone(CamelModel):
    name: str
    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{3,8}$")


class LayoutData(CamelModel):
    grid_width: int = Field(..., ge=1)
    grid_height: int = Field(..., ge=1)
    cell_size: int = Field(50, ge=1)
    zones: list[Zone] = []


class FloorPlanCreate(CamelModel):
    event_id: int
    name: str = Field(..., min_length=1, max_length=255)
    layout_data: LayoutData
    image_url: Optional[str] = Field(None, max_length=500)
    is_published: bool = False


class FloorPlanUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    layout_data: Optional[LayoutData] = None
    image_url: Optional[str] = Field(None, max_length=500)
    is_published: Optional[bool] = None


class FloorPlanDuplicate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class FloorPlanResponse(CamelModel):
    id: int
    event_id: int
    name: str
    layout_data: LayoutData
    image_url: Optional[str] = None
    is_published: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
