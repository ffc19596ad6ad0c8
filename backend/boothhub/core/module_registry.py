"""
Static module registry.

Feature modules are declared up front as ModuleDescriptor entries (see
boothhub.modules.MODULES) instead of being discovered on disk. At startup
the registry:

  1. skips, with a warning, any module whose flag is off or whose
     dependency flags are off, and mounts a stub that answers every path
     under the module prefix with 503 MODULE_DISABLED;
  2. mounts each loaded module's router at /<name> behind a request-time
     flag check, so switching a flag off later disables it immediately;
  3. subscribes the module's event handlers to the bus.

initialize() runs each loaded module's migrate hook (once) and then its
initialize hook; shutdown() runs every shutdown hook concurrently. Hook
failures are logged and never abort startup or shutdown.
"""

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from fastapi import APIRouter, Depends

from boothhub.core.event_bus import Handler
from boothhub.core.exceptions import ModuleDisabled
from boothhub.core.logging import get_logger

if TYPE_CHECKING:
    from boothhub.core.container import ServiceContainer

logger = get_logger(__name__)

Hook = Callable[["ServiceContainer"], Awaitable[None]]


@dataclass(frozen=True)
class ModuleDescriptor:
    name: str
    version: str = "1.0.0"
    description: str = ""
    dependencies: tuple[str, ...] = ()
    router_factory: Optional[Callable[[], APIRouter]] = None
    # Built per container so handlers can open sessions and reach services
    event_handlers: Optional[Callable[["ServiceContainer"], dict[str, Handler]]] = None
    migrate: Optional[Hook] = None
    initialize: Optional[Hook] = None
    shutdown: Optional[Hook] = None


def disabled_router(name: str) -> APIRouter:
    router = APIRouter(prefix=f"/{name}", tags=[name])

    methods = ["GET", "POST", "PUT", "PATCH", "DELETE"]

    @router.api_route("", methods=methods, include_in_schema=False)
    @router.api_route("/{path:path}", methods=methods, include_in_schema=False)
    async def module_disabled(path: str = ""):
        raise ModuleDisabled(f"Module '{name}' is disabled")

    return router


class ModuleRegistry:
    def __init__(self, descriptors, container: "ServiceContainer"):
        self.descriptors = tuple(descriptors)
        self.container = container
        self.flags = container.flags
        self.bus = container.bus
        self.loaded: dict[str, ModuleDescriptor] = {}
        self.skipped: dict[str, str] = {}
        self._migrated: set[str] = set()
        self._unsubscribe: dict[str, list[Callable[[], None]]] = {}

    def get(self, name: str) -> Optional[ModuleDescriptor]:
        return self.loaded.get(name)

    def _skip_reason(self, descriptor: ModuleDescriptor) -> Optional[str]:
        if not self.flags.enabled(descriptor.name):
            return "disabled by feature flag"
        for dependency in descriptor.dependencies:
            if not self.flags.enabled(dependency):
                return f"requires '{dependency}' which is disabled"
        return None

    def _guard(self, name: str):
        def require_module_enabled() -> None:
            if not self.flags.enabled(name):
                raise ModuleDisabled(f"Module '{name}' is disabled")

        return require_module_enabled

    def load(self, router: APIRouter) -> None:
        for descriptor in self.descriptors:
            reason = self._skip_reason(descriptor)
            if reason:
                self.skipped[descriptor.name] = reason
                router.include_router(disabled_router(descriptor.name))
                logger.warning("module_skipped", module=descriptor.name, reason=reason)
                continue

            if descriptor.router_factory:
                router.include_router(
                    descriptor.router_factory(),
                    prefix=f"/{descriptor.name}",
                    dependencies=[Depends(self._guard(descriptor.name))],
                )

            handlers = descriptor.event_handlers(self.container) if descriptor.event_handlers else {}
            self._unsubscribe[descriptor.name] = [
                self.bus.subscribe(topic, handler) for topic, handler in handlers.items()
            ]

            self.loaded[descriptor.name] = descriptor
            logger.info(
                "module_loaded",
                module=descriptor.name,
                version=descriptor.version,
                handlers=sorted(handlers),
            )

    async def initialize(self) -> None:
        for name, descriptor in self.loaded.items():
            if descriptor.migrate and name not in self._migrated:
                self._migrated.add(name)
                try:
                    await descriptor.migrate(self.container)
                except Exception as e:
                    logger.error("module_migration_failed", module=name, error=str(e), exc_info=e)
            if descriptor.initialize:
                try:
                    await descriptor.initialize(self.container)
                except Exception as e:
                    logger.error("module_initialize_failed", module=name, error=str(e), exc_info=e)

    async def shutdown(self) -> None:
        names = [name for name, d in self.loaded.items() if d.shutdown]
        results = await asyncio.gather(
            *(self.loaded[name].shutdown(self.container) for name in names),
            return_exceptions=True,
        )
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                logger.error("module_shutdown_failed", module=name, error=str(result), exc_info=result)

        for unsubscribers in self._unsubscribe.values():
            for unsubscribe in unsubscribers:
                unsubscribe()
        self._unsubscribe.clear()

    def describe(self) -> list[dict]:
        modules = [
            {
                "name": d.name,
                "version": d.version,
                "description": d.description,
                "dependencies": list(d.dependencies),
                "loaded": d.name in self.loaded,
                "enabled": self.flags.enabled(d.name),
                "skipReason": self.skipped.get(d.name),
            }
            for d in self.descriptors
        ]
        return modules
