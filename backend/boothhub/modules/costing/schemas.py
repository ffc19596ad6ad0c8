from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import Field

from boothhub.schemas.common import CamelModel

CostStatusLiteral = Literal["pending", "approved", "paid", "rejected"]


class CostCreate(CamelModel):
    event_id: int
    category: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0, decimal_places=2)
    currency: str = Field("USD", min_length=3, max_length=3)
    vendor: Optional[str] = Field(None, max_length=255)
    cost_date: Optional[date] = Field(None, alias="date")


class CostUpdate(CamelModel):
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1)
    amount: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    vendor: Optional[str] = Field(None, max_length=255)
    cost_date: Optional[date] = Field(None, alias="date")
    status: Optional[CostStatusLiteral] = None


class CostResponse(CamelModel):
    id: int
    event_id: int
    category: str
    description: str
    amount: float
    currency: str
    cost_date: date = Field(..., serialization_alias="date")
    vendor: Optional[str] = None
    status: str
    created_at: datetime


class BudgetSet(CamelModel):
    event_id: int
    category: str = Field(..., min_length=1, max_length=100)
    allocated_amount: Decimal = Field(..., ge=0, decimal_places=2)
    currency: str = Field("USD", min_length=3, max_length=3)


class BudgetResponse(CamelModel):
    id: int
    event_id: int
    category: str
    allocated_amount: float
    spent_amount: float
    currency: str
