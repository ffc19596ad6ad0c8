"""
Policies module: published terms and rules. Off by default.
"""

from boothhub.core.module_registry import ModuleDescriptor
from boothhub.db.session import create_tables
from boothhub.modules.policies.models import Policy
from boothhub.modules.policies.routes import get_router


async def migrate(container):
    async with container.session() as db:
        await create_tables(db, [Policy.__table__])


descriptor = ModuleDescriptor(
    name="policies",
    version="1.0.0",
    description="Policy management, terms and compliance",
    router_factory=get_router,
    migrate=migrate,
)
