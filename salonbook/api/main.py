"""API router setup."""
from fastapi import APIRouter

from salonbook.api.routes import appointments, availability, professionals

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(appointments.router)
api_router.include_router(availability.router)
api_router.include_router(professionals.router)
