"""
System endpoints: loaded modules, feature flags and event bus history.
"""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query

from boothhub.api.deps import get_container, require_admin
from boothhub.core.container import ServiceContainer
from boothhub.core.exceptions import NotFound
from boothhub.models.user import User
from boothhub.schemas.common import CamelModel, ok

router = APIRouter(prefix="/system", tags=["System"])


class FlagUpdate(CamelModel):
    enabled: bool


@router.get("/modules")
async def list_modules(container: ServiceContainer = Depends(get_container)):
    registry = container.registry
    return ok(registry.describe() if registry else [])


@router.get("/flags")
async def list_flags(container: ServiceContainer = Depends(get_container)):
    return ok([asdict(flag) for flag in container.flags.all()])


@router.put("/flags/{name}")
async def set_flag(
    name: str,
    update: FlagUpdate,
    admin: User = Depends(require_admin),
    container: ServiceContainer = Depends(get_container),
):
    """Toggle a flag at runtime. Module routes check their flag on every request."""
    if update.enabled:
        flag = container.flags.enable(name)
    else:
        flag = container.flags.disable(name)
        if flag is None:
            raise NotFound(f"Feature flag '{name}' not found")
    return ok(asdict(flag))


@router.get("/events/history")
async def event_history(
    topic: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    admin: User = Depends(require_admin),
    container: ServiceContainer = Depends(get_container),
):
    return ok(container.bus.history(topic)[:limit])
