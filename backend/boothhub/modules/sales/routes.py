"""
Sales module endpoints, mounted at /api/v1/sales.

The booth availability, detail and reserve endpoints are the core /booths
handlers registered a second time, so both paths behave identically.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.api.deps import get_booth_store, require_admin, require_feature
from boothhub.api.routes import booths as core_booths
from boothhub.db.session import get_db
from boothhub.models.user import User
from boothhub.modules.sales.schemas import (
    FloorPlanCreate,
    FloorPlanDuplicate,
    FloorPlanResponse,
    FloorPlanUpdate,
)
from boothhub.modules.sales.service import FloorPlanService, render_svg
from boothhub.schemas.booth import BoothResponse, ReservationCreated
from boothhub.schemas.common import ApiResponse, ok
from boothhub.services.booth_store import BoothStore


def get_floor_plans(db: AsyncSession = Depends(get_db)) -> FloorPlanService:
    return FloorPlanService(db)


def get_router() -> APIRouter:
    router = APIRouter(tags=["Sales"])

    router.add_api_route(
        "/booths/available",
        core_booths.available_booths,
        methods=["GET"],
        response_model=ApiResponse[list[BoothResponse]],
    )
    router.add_api_route(
        "/booths/reserve",
        core_booths.reserve_booth,
        methods=["POST"],
        response_model=ApiResponse[ReservationCreated],
        status_code=status.HTTP_201_CREATED,
    )
    router.add_api_route(
        "/booths/{booth_id}",
        core_booths.get_booth,
        methods=["GET"],
        response_model=ApiResponse[BoothResponse],
    )

    @router.get(
        "/floor-plan/{event_id}",
        response_class=Response,
        dependencies=[Depends(require_feature("svgFloorPlan"))],
    )
    async def floor_plan_svg(
        event_id: int,
        plans: FloorPlanService = Depends(get_floor_plans),
        store: BoothStore = Depends(get_booth_store),
    ):
        """Latest floor plan for the event drawn as SVG, coloured by live booth status."""
        plan = await plans.latest_for_event(event_id)
        booths = await store.list_for_event(event_id)
        available = {b.id for b in await store.get_available(event_id)}
        # A booth held by a lapsed reservation is drawn as available
        statuses = {b.id: "available" for b in booths if b.id in available}
        return Response(content=render_svg(plan.layout_data, booths, statuses), media_type="image/svg+xml")

    # Admin floor plan management

    @router.get("/floor-plans/event/{event_id}", response_model=ApiResponse[list[FloorPlanResponse]])
    async def list_floor_plans(
        event_id: int,
        admin: User = Depends(require_admin),
        plans: FloorPlanService = Depends(get_floor_plans),
    ):
        return ok(await plans.list_for_event(event_id))

    @router.post(
        "/floor-plans",
        response_model=ApiResponse[FloorPlanResponse],
        status_code=status.HTTP_201_CREATED,
    )
    async def create_floor_plan(
        data: FloorPlanCreate,
        admin: User = Depends(require_admin),
        plans: FloorPlanService = Depends(get_floor_plans),
    ):
        return ok(await plans.create(data))

    @router.get("/floor-plans/{plan_id}", response_model=ApiResponse[FloorPlanResponse])
    async def get_floor_plan(
        plan_id: int,
        admin: User = Depends(require_admin),
        plans: FloorPlanService = Depends(get_floor_plans),
    ):
        return ok(await plans.get(plan_id))

    @router.put("/floor-plans/{plan_id}", response_model=ApiResponse[FloorPlanResponse])
    async def update_floor_plan(
        plan_id: int,
        changes: FloorPlanUpdate,
        admin: User = Depends(require_admin),
        plans: FloorPlanService = Depends(get_floor_plans),
    ):
        return ok(await plans.update(plan_id, changes))

    @router.delete("/floor-plans/{plan_id}", response_model=ApiResponse[None])
    async def delete_floor_plan(
        plan_id: int,
        admin: User = Depends(require_admin),
        plans: FloorPlanService = Depends(get_floor_plans),
    ):
        await plans.delete(plan_id)
        return ok(message="Floor plan deleted")

    @router.post(
        "/floor-plans/{plan_id}/duplicate",
        response_model=ApiResponse[FloorPlanResponse],
        status_code=status.HTTP_201_CREATED,
    )
    async def duplicate_floor_plan(
        plan_id: int,
        data: Optional[FloorPlanDuplicate] = None,
        admin: User = Depends(require_admin),
        plans: FloorPlanService = Depends(get_floor_plans),
    ):
        return ok(await plans.duplicate(plan_id, data.name if data else None))

    return router
