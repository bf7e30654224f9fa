# participation_service/api/v1/api.py

from fastapi import APIRouter
from participation_service.api.v1.endpoints import (
    internals,
    participation,
    public,
)

# This is the main router for the v1 API.
# It will include all the specific endpoint routers.
api_router = APIRouter()

api_router.include_router(public.router)
api_router.include_router(participation.router)
api_router.include_router(internals.router)
