"""
Central API router that aggregates the core route modules.
Feature module routers are mounted onto it by the ModuleRegistry.
"""

from fastapi import APIRouter

from boothhub.api.routes import auth, booths, events, invoices, reservations, system, users, webhooks

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(events.router)
api_router.include_router(booths.router)
api_router.include_router(reservations.router)
api_router.include_router(invoices.router)
api_router.include_router(users.router)
api_router.include_router(webhooks.router)
api_router.include_router(system.router)
