"""
Proposals module: sponsorship and exhibitor proposals with an approval
workflow, plus reusable templates.
"""

from boothhub.core.module_registry import ModuleDescriptor
from boothhub.db.session import create_tables
from boothhub.modules.proposals.models import Proposal, ProposalTemplate
from boothhub.modules.proposals.routes import get_router


async def migrate(container):
    async with container.session() as db:
        await create_tables(db, [ProposalTemplate.__table__, Proposal.__table__])


descriptor = ModuleDescriptor(
    name="proposals",
    version="1.0.0",
    description="Proposal creation and approval workflow",
    router_factory=get_router,
    migrate=migrate,
)
