"""API v1 router configuration."""

from fastapi import APIRouter

from doorstep.api.v1.endpoints import (
    appointments,
    doctors,
    health,
    patients,
    payments,
    subscriptions,
)

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
api_router.include_router(payments.router)
api_router.include_router(subscriptions.router)
api_router.include_router(doctors.router)
api_router.include_router(patients.router)
