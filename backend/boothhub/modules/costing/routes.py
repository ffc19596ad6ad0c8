"""
Costing module endpoints, mounted at /api/v1/costing. Admin only.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.api.deps import get_container, require_admin
from boothhub.core.container import ServiceContainer
from boothhub.db.session import get_db
from boothhub.modules.costing.schemas import (
    BudgetResponse,
    BudgetSet,
    CostCreate,
    CostResponse,
    CostStatusLiteral,
    CostUpdate,
)
from boothhub.modules.costing.service import CostingService
from boothhub.schemas.common import ApiResponse, ok


def get_costing(
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
) -> CostingService:
    return CostingService(db, container.bus)


def get_router() -> APIRouter:
    router = APIRouter(tags=["Costing"], dependencies=[Depends(require_admin)])

    @router.post("/costs", response_model=ApiResponse[CostResponse], status_code=status.HTTP_201_CREATED)
    async def add_cost(data: CostCreate, costing: CostingService = Depends(get_costing)):
        return ok(await costing.add_cost(data))

    @router.get("/costs/event/{event_id}", response_model=ApiResponse[list[CostResponse]])
    async def event_costs(
        event_id: int,
        category: Optional[str] = Query(None),
        status_filter: Optional[CostStatusLiteral] = Query(None, alias="status"),
        start: Optional[date] = Query(None, alias="startDate"),
        end: Optional[date] = Query(None, alias="endDate"),
        costing: CostingService = Depends(get_costing),
    ):
        costs = await costing.event_costs(event_id, category, status_filter, start, end)
        return ok(costs, count=len(costs))

    @router.get("/costs/{cost_id}", response_model=ApiResponse[CostResponse])
    async def get_cost(cost_id: int, costing: CostingService = Depends(get_costing)):
        return ok(await costing.get_cost(cost_id))

    @router.put("/costs/{cost_id}", response_model=ApiResponse[CostResponse])
    async def update_cost(cost_id: int, changes: CostUpdate, costing: CostingService = Depends(get_costing)):
        return ok(await costing.update_cost(cost_id, changes))

    @router.delete("/costs/{cost_id}", response_model=ApiResponse[None])
    async def delete_cost(cost_id: int, costing: CostingService = Depends(get_costing)):
        await costing.delete_cost(cost_id)
        return ok(message="Cost deleted")

    @router.post("/budget", response_model=ApiResponse[BudgetResponse])
    async def set_budget(data: BudgetSet, costing: CostingService = Depends(get_costing)):
        return ok(await costing.set_budget(data))

    @router.get("/budget/event/{event_id}", response_model=ApiResponse[list[BudgetResponse]])
    async def event_budgets(event_id: int, costing: CostingService = Depends(get_costing)):
        return ok(await costing.event_budgets(event_id))

    @router.get("/summary/{event_id}")
    async def cost_summary(event_id: int, costing: CostingService = Depends(get_costing)):
        return ok(await costing.summary(event_id))

    return router
