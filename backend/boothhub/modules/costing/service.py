"""
Cost tracking and budgets.

Adding a cost re-derives the category budget's spent amount and publishes
budget.exceeded when spending passes the allocation, or budget.warning once
it reaches BUDGET_WARNING_PERCENT of it.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from boothhub.core.event_bus import EventBus, Topic
from boothhub.core.exceptions import NotFound, ValidationError
from boothhub.core.logging import get_logger
from boothhub.models.event import Event
from boothhub.modules.costing.models import Budget, Cost, CostStatus
from boothhub.modules.costing.schemas import BudgetSet, CostCreate, CostUpdate

logger = get_logger(__name__)

MODULE = "costing"
BUDGET_WARNING_PERCENT = Decimal("90")


class CostingService:
    def __init__(self, db: AsyncSession, bus: EventBus):
        self.db = db
        self.bus = bus

    async def get_cost(self, cost_id: int) -> Cost:
        cost = await self.db.get(Cost, cost_id)
        if not cost:
            raise NotFound(f"Cost {cost_id} not found")
        return cost

    async def event_costs(
        self,
        event_id: int,
        category: Optional[str] = None,
        status: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[Cost]:
        query = select(Cost).where(Cost.event_id == event_id)
        if category:
            query = query.where(Cost.category == category)
        if status:
            query = query.where(Cost.status == status)
        if start is not None:
            query = query.where(Cost.cost_date >= start)
        if end is not None:
            query = query.where(Cost.cost_date <= end)
        result = await self.db.execute(query.order_by(Cost.cost_date.desc(), Cost.id.desc()))
        return list(result.scalars().all())

    async def add_cost(self, data: CostCreate) -> Cost:
        if not await self.db.get(Event, data.event_id):
            raise NotFound(f"Event {data.event_id} not found")

        cost = Cost(
            event_id=data.event_id,
            category=data.category,
            description=data.description,
            amount=data.amount,
            currency=data.currency.upper(),
            vendor=data.vendor,
            cost_date=data.cost_date or date.today(),
            status=CostStatus.PENDING.value,
        )
        self.db.add(cost)
        await self.db.flush()
        budget = await self._refresh_spent(cost.event_id, cost.category)
        await self.db.commit()
        await self.db.refresh(cost)

        logger.info("cost_added", cost_id=cost.id, event_id=cost.event_id, category=cost.category)
        await self.bus.emit_async(
            Topic.COST_ADDED,
            {"costId": cost.id, "eventId": cost.event_id, "amount": float(cost.amount), "module": MODULE},
        )
        if budget is not None:
            await self._check_budget(budget)
        return cost

    async def update_cost(self, cost_id: int, changes: CostUpdate) -> Cost:
        cost = await self.get_cost(cost_id)
        updates = changes.model_dump(exclude_unset=True)
        if not updates:
            raise ValidationError("No valid fields to update")

        previous_category = cost.category
        for field, value in updates.items():
            setattr(cost, field, value)
        await self.db.flush()
        await self._refresh_spent(cost.event_id, cost.category)
        if previous_category != cost.category:
            await self._refresh_spent(cost.event_id, previous_category)
        await self.db.commit()
        await self.db.refresh(cost)
        return cost

    async def delete_cost(self, cost_id: int) -> None:
        cost = await self.get_cost(cost_id)
        event_id, category = cost.event_id, cost.category
        await self.db.delete(cost)
        await self.db.flush()
        await self._refresh_spent(event_id, category)
        await self.db.commit()
        logger.info("cost_deleted", cost_id=cost_id, event_id=event_id)

    async def set_budget(self, data: BudgetSet) -> Budget:
        """Create the category budget or replace its allocation."""
        if not await self.db.get(Event, data.event_id):
            raise NotFound(f"Event {data.event_id} not found")

        budget = await self._budget(data.event_id, data.category)
        if budget is None:
            budget = Budget(
                event_id=data.event_id,
                category=data.category,
                allocated_amount=data.allocated_amount,
                spent_amount=0,
                currency=data.currency.upper(),
            )
            self.db.add(budget)
        else:
            budget.allocated_amount = data.allocated_amount
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            budget = await self._budget(data.event_id, data.category)
            budget.allocated_amount = data.allocated_amount
        await self._refresh_spent(data.event_id, data.category)
        await self.db.commit()
        await self.db.refresh(budget)
        return budget

    async def event_budgets(self, event_id: int) -> list[Budget]:
        result = await self.db.execute(
            select(Budget).where(Budget.event_id == event_id).order_by(Budget.category.asc())
        )
        return list(result.scalars().all())

    async def summary(self, event_id: int) -> dict[str, Any]:
        by_category = (
            await self.db.execute(
                select(Cost.category, Cost.status, func.sum(Cost.amount), func.count(Cost.id))
                .where(Cost.event_id == event_id)
                .group_by(Cost.category, Cost.status)
                .order_by(Cost.category.asc(), Cost.status.asc())
            )
        ).all()
        budgets = await self.event_budgets(event_id)

        total_spent = sum((Decimal(total or 0) for _, _, total, _ in by_category), Decimal("0"))
        total_budget = sum((Decimal(b.allocated_amount) for b in budgets), Decimal("0"))
        return {
            "totalSpent": float(total_spent),
            "totalBudget": float(total_budget),
            "remaining": float(total_budget - total_spent),
            "byCategory": [
                {"category": category, "status": status, "total": float(total or 0), "count": count}
                for category, status, total, count in by_category
            ],
            "budgets": [
                {
                    "category": b.category,
                    "allocatedAmount": float(b.allocated_amount),
                    "spentAmount": float(b.spent_amount),
                    "remaining": float(Decimal(b.allocated_amount) - Decimal(b.spent_amount)),
                }
                for b in budgets
            ],
        }

    async def _budget(self, event_id: int, category: str) -> Optional[Budget]:
        return await self.db.scalar(
            select(Budget).where(Budget.event_id == event_id, Budget.category == category)
        )

    async def _refresh_spent(self, event_id: int, category: str) -> Optional[Budget]:
        budget = await self._budget(event_id, category)
        if budget is None:
            return None
        spent = await self.db.scalar(
            select(func.coalesce(func.sum(Cost.amount), 0)).where(
                Cost.event_id == event_id,
                Cost.category == category,
                Cost.status != CostStatus.REJECTED.value,
            )
        )
        budget.spent_amount = Decimal(spent or 0)
        return budget

    async def _check_budget(self, budget: Budget) -> None:
        allocated = Decimal(budget.allocated_amount)
        spent = Decimal(budget.spent_amount)
        base = {
            "eventId": budget.event_id,
            "category": budget.category,
            "allocated": float(allocated),
            "spent": float(spent),
            "module": MODULE,
        }
        if spent > allocated:
            logger.warning("budget_exceeded", event_id=budget.event_id, category=budget.category)
            await self.bus.emit_async(Topic.BUDGET_EXCEEDED, {**base, "overage": float(spent - allocated)})
        elif allocated > 0:
            percentage = spent / allocated * 100
            if percentage >= BUDGET_WARNING_PERCENT:
                await self.bus.emit_async(Topic.BUDGET_WARNING, {**base, "percentage": float(percentage)})
