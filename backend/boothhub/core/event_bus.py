"""
In-process publish/subscribe bus.

Modules never call each other directly; they react to topics published here.
The bus is a plain object owned by the service container and handed to whoever
needs it, so tests build their own instance.

Two ways to publish:
  - emit(): fire and forget. Sync handlers run inline, coroutine handlers are
    scheduled on the running loop. Returns as soon as everything is scheduled.
  - emit_async(): awaits every handler, in registration order, and returns once
    they have all finished.

In both cases a failing handler is logged and counted; it never reaches the
publisher and never stops the remaining handlers.

History is diagnostic only: per topic, most recent first, capped.
"""

import asyncio
import inspect
from collections import deque
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from boothhub.core.logging import get_logger
from boothhub.core.metrics import event_handler_failures
from boothhub.core.utils import utcnow

logger = get_logger(__name__)

Payload = dict[str, Any]
Handler = Callable[[Payload], Union[None, Awaitable[None]]]


class Topic(str, Enum):
    BOOTH_RESERVED = "boothReserved"
    BOOTH_BOOKED = "boothBooked"
    BOOTH_RELEASED = "boothReleased"
    BOOTH_STATUS_CHANGED = "boothStatusChanged"
    BOOTH_SELECTED = "boothSelected"
    RESERVATION_EXPIRED = "reservation.expired"
    PAYMENT_INITIATED = "payment.initiated"
    PAYMENT_COMPLETED = "payment.completed"
    PAYMENT_FAILED = "payment.failed"
    PAYMENT_REFUNDED = "payment.refunded"
    PAYMENT_ORPHANED = "payment.orphaned"
    INVOICE_GENERATED = "invoice.generated"
    METRIC_RECORDED = "metric.recorded"
    ACTIVITY_LOGGED = "activity.logged"
    COST_ADDED = "cost.added"
    BUDGET_WARNING = "budget.warning"
    BUDGET_EXCEEDED = "budget.exceeded"
    POLICY_CREATED = "policy.created"
    POLICY_ACTIVATED = "policy.activated"
    PROPOSAL_CREATED = "proposal.created"
    PROPOSAL_STATUS_CHANGED = "proposal.status_changed"


def _key(topic: Union[Topic, str]) -> str:
    return topic.value if isinstance(topic, Topic) else str(topic)


class EventBus:
    def __init__(self, history_size: int = 100):
        self.history_size = history_size
        self._handlers: dict[str, list[Handler]] = {}
        self._history: dict[str, deque] = {}
        self._pending: set[asyncio.Task] = set()

    # Subscription

    def subscribe(self, topic: Union[Topic, str], handler: Handler) -> Callable[[], None]:
        """Register a handler. Returns a callable that unsubscribes it."""
        name = _key(topic)
        self._handlers.setdefault(name, []).append(handler)
        return lambda: self.unsubscribe(name, handler)

    def unsubscribe(self, topic: Union[Topic, str], handler: Handler) -> None:
        handlers = self._handlers.get(_key(topic))
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return
        if not handlers:
            del self._handlers[_key(topic)]

    def once(self, topic: Union[Topic, str], handler: Handler) -> Callable[[], None]:
        name = _key(topic)

        def wrapper(payload: Payload):
            self.unsubscribe(name, wrapper)
            return handler(payload)

        return self.subscribe(name, wrapper)

    def handlers(self, topic: Union[Topic, str]) -> list[Handler]:
        return list(self._handlers.get(_key(topic), []))

    def topics(self) -> list[str]:
        return sorted(self._handlers)

    # Publishing

    def _enrich(self, name: str, payload: Optional[Payload]) -> Payload:
        data = dict(payload or {})
        data["timestamp"] = utcnow().isoformat()
        data.setdefault("module", "unknown")
        history = self._history.get(name)
        if history is None:
            history = self._history[name] = deque(maxlen=self.history_size)
        history.appendleft({"event": name, **data})
        return data

    def _handler_failed(self, name: str, handler: Handler, exc: BaseException) -> None:
        event_handler_failures.labels(topic=name).inc()
        logger.error(
            "event_handler_failed",
            topic=name,
            handler=getattr(handler, "__qualname__", repr(handler)),
            error=str(exc),
            exc_info=exc,
        )

    def emit(self, topic: Union[Topic, str], payload: Optional[Payload] = None) -> bool:
        """
        Synchronous fire. Coroutine handlers are scheduled, not awaited.
        Returns True if any handler was registered.
        """
        name = _key(topic)
        data = self._enrich(name, payload)
        handlers = self.handlers(name)

        for handler in handlers:
            try:
                result = handler(data)
            except Exception as exc:
                self._handler_failed(name, handler, exc)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending.add(task)
                task.add_done_callback(lambda t, h=handler: self._task_done(name, h, t))
        return bool(handlers)

    def _task_done(self, name: str, handler: Handler, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._handler_failed(name, handler, exc)

    async def emit_async(self, topic: Union[Topic, str], payload: Optional[Payload] = None) -> None:
        """Publish and wait until every handler, sync or async, has finished."""
        name = _key(topic)
        data = self._enrich(name, payload)

        for handler in self.handlers(name):
            try:
                result = handler(data)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                self._handler_failed(name, handler, exc)

    async def drain(self) -> None:
        """Wait for handlers scheduled by emit()."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # Diagnostics

    def history(self, topic: Union[Topic, str, None] = None) -> list[Payload]:
        if topic is not None:
            return list(self._history.get(_key(topic), ()))
        merged = [entry for entries in self._history.values() for entry in entries]
        merged.sort(key=lambda entry: entry["timestamp"], reverse=True)
        return merged

    def clear_history(self, topic: Union[Topic, str, None] = None) -> None:
        if topic is None:
            self._history.clear()
        else:
            self._history.pop(_key(topic), None)
