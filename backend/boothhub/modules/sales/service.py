"""
Floor plan storage and SVG rendering.

Floor plans only describe geometry (grid, cell size, zones). Booth colours
in the rendered SVG always come from live booth status.
"""

from html import escape
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.core.exceptions import NotFound
from boothhub.core.logging import get_logger
from boothhub.models.booth import Booth, BoothStatus
from boothhub.models.event import Event
from boothhub.models.floor_plan import FloorPlan
from boothhub.modules.sales.schemas import FloorPlanCreate, FloorPlanUpdate

logger = get_logger(__name__)

STATUS_FILL = {
    BoothStatus.AVAILABLE.value: "#90EE90",
    BoothStatus.RESERVED.value: "#FFD700",
    BoothStatus.BOOKED.value: "#FF6B6B",
    BoothStatus.UNAVAILABLE.value: "#CCCCCC",
}

DEFAULT_ZONE_COLOR = "#2196F3"


def render_svg(layout: dict, booths: Iterable[Booth], statuses: Optional[dict[int, str]] = None) -> str:
    """
    Draw the floor plan: background, dashed zones, then one group per booth
    coloured by status. `statuses` overrides booth.status per booth id.
    """
    statuses = statuses or {}
    cell = layout.get("cell_size") or 50
    width = (layout.get("grid_width") or 20) * cell
    height = (layout.get("grid_height") or 20) * cell

    parts = [
        f'<svg width="{width}" height="{height}" xmlns="http://www.w3.org/2000/svg">',
        f'<rect width="{width}" height="{height}" fill="#f5f5f5" stroke="#ddd" stroke-width="2"/>',
    ]

    for zone in layout.get("zones") or []:
        color = zone.get("color") or DEFAULT_ZONE_COLOR
        x, y = zone["x"] * cell, zone["y"] * cell
        w, h = zone["width"] * cell, zone["height"] * cell
        parts.append(
            f'<rect class="zone" x="{x}" y="{y}" width="{w}" height="{h}" fill="{color}" '
            f'fill-opacity="0.3" stroke="{color}" stroke-width="2" stroke-dasharray="5,5"/>'
        )
        parts.append(
            f'<text x="{x + w / 2:g}" y="{y + 20}" text-anchor="middle" font-size="14" '
            f'font-weight="bold" fill="{color}">{escape(zone["name"])}</text>'
        )

    for booth in booths:
        status = statuses.get(booth.id, booth.status)
        x, y = (booth.location_x or 0) * cell, (booth.location_y or 0) * cell
        w, h = (booth.width or 1) * cell, (booth.height or 1) * cell
        cx, cy = x + w / 2, y + h / 2
        parts.append(
            f'<g class="booth" data-booth-id="{booth.id}" data-status="{status}">'
            f'<rect x="{x}" y="{y}" width="{w}" height="{h}" fill="{STATUS_FILL.get(status, "#CCCCCC")}" '
            f'stroke="#333" stroke-width="2"/>'
            f'<text x="{cx:g}" y="{cy:g}" text-anchor="middle" dominant-baseline="middle" '
            f'font-size="12" font-weight="bold">{escape(booth.booth_number)}</text>'
            f'<text x="{cx:g}" y="{cy + 15:g}" text-anchor="middle" dominant-baseline="middle" '
            f'font-size="10">${booth.price}</text>'
            f"</g>"
        )

    parts.append("</svg>")
    return "".join(parts)


class FloorPlanService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, plan_id: int) -> FloorPlan:
        plan = await self.db.get(FloorPlan, plan_id)
        if not plan:
            raise NotFound(f"Floor plan {plan_id} not found")
        return plan

    async def latest_for_event(self, event_id: int) -> FloorPlan:
        plan = await self.db.scalar(
            select(FloorPlan)
            .where(FloorPlan.event_id == event_id)
            .order_by(FloorPlan.created_at.desc(), FloorPlan.id.desc())
            .limit(1)
        )
        if not plan:
            raise NotFound(f"No floor plan for event {event_id}")
        return plan

    async def list_for_event(self, event_id: int) -> list[FloorPlan]:
        result = await self.db.execute(
            select(FloorPlan)
            .where(FloorPlan.event_id == event_id)
            .order_by(FloorPlan.created_at.desc(), FloorPlan.id.desc())
        )
        return list(result.scalars().all())

    async def create(self, data: FloorPlanCreate) -> FloorPlan:
        if not await self.db.get(Event, data.event_id):
            raise NotFound(f"Event {data.event_id} not found")
        plan = FloorPlan(
            event_id=data.event_id,
            name=data.name,
            layout_data=data.layout_data.model_dump(),
            image_url=data.image_url,
            is_published=data.is_published,
        )
        self.db.add(plan)
        await self.db.commit()
        await self.db.refresh(plan)
        logger.info("floor_plan_created", floor_plan_id=plan.id, event_id=plan.event_id)
        return plan

    async def update(self, plan_id: int, changes: FloorPlanUpdate) -> FloorPlan:
        plan = await self.get(plan_id)
        updates = changes.model_dump(exclude_unset=True)
        if "layout_data" in updates and changes.layout_data is not None:
            updates["layout_data"] = changes.layout_data.model_dump()
        for field, value in updates.items():
            setattr(plan, field, value)
        await self.db.commit()
        await self.db.refresh(plan)
        return plan

    async def delete(self, plan_id: int) -> None:
        plan = await self.get(plan_id)
        await self.db.delete(plan)
        await self.db.commit()
        logger.info("floor_plan_deleted", floor_plan_id=plan_id)

    async def duplicate(self, plan_id: int, name: Optional[str] = None) -> FloorPlan:
        original = await self.get(plan_id)
        copy = FloorPlan(
            event_id=original.event_id,
            name=name or f"{original.name} (Copy)",
            layout_data=dict(original.layout_data or {}),
            image_url=original.image_url,
            is_published=False,
        )
        self.db.add(copy)
        await self.db.commit()
        await self.db.refresh(copy)
        return copy
