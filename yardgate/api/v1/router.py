from fastapi import APIRouter

from yardgate.api.v1.endpoints import (
    # Truck lifecycle
    trucks,
    processing,
    weighbridge,
    # Approvals
    approvals,
    # Organization settings
    settings,
)

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(trucks.router)
api_router.include_router(processing.router)
api_router.include_router(weighbridge.router)
api_router.include_router(approvals.router)
api_router.include_router(settings.router)
