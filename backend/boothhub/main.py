"""
BoothHub API - Main Application Entry Point

Booth booking backend for exhibition events:
- Exclusive, time-bounded booth holds that survive concurrent reservation attempts
- Payment intents, idempotent confirmation and signed webhooks
- Feature-flagged modules wired through an in-process event bus
- Real-time booth status over WebSocket
- Structured logging with request correlation and Prometheus metrics
"""

import json
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from boothhub.api.exception_handlers import register_exception_handlers
from boothhub.api.middleware import RequestLoggingMiddleware
from boothhub.api.router import api_router
from boothhub.core.config import get_settings
from boothhub.core.container import ServiceContainer
from boothhub.core.logging import get_logger, setup_logging
from boothhub.core.metrics import metrics_endpoint
from boothhub.core.module_registry import ModuleRegistry
from boothhub.infrastructure.redis_client import RedisClient
from boothhub.modules import MODULES
from boothhub.services.cache_service import cache_health

settings = get_settings()

container = ServiceContainer(settings)
registry = ModuleRegistry(MODULES, container)
container.registry = registry
# Module routers must be on api_router before it is mounted
registry.load(api_router)

if container.flags.enabled("realTimeUpdates"):
    container.broadcaster.attach(container.bus)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        modules=sorted(registry.loaded),
    )

    redis_client = await RedisClient.get_client()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache and admission gate")

    await registry.initialize()

    yield

    await registry.shutdown()
    await container.bus.drain()
    await RedisClient.close()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Booth booking API with exclusive reservations and modular features",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)
app.state.container = container

register_exception_handlers(app)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials="*" not in settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Custom middleware
app.add_middleware(RequestLoggingMiddleware)

# Routes
app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await cache_health()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
        "modules": sorted(registry.loaded),
        "websocketConnections": container.broadcaster.connection_count(),
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }


@app.websocket("/ws")
async def booth_updates(websocket: WebSocket):
    """Clients join event rooms and receive boothStatusUpdate pushes."""
    broadcaster = container.broadcaster
    await broadcaster.connect(websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                await websocket.send_json({"type": "error", "message": "Invalid JSON"})
                continue
            await broadcaster.handle_message(websocket, message)
    except WebSocketDisconnect:
        pass
    finally:
        await broadcaster.disconnect(websocket)
