"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from tourism_api.api.routes import reservations

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(reservations.router)
