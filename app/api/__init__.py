from fastapi import APIRouter
from . import health, internal


router = APIRouter()
router.include_router(health.router, tags=["health"])
router.include_router(internal.router, prefix="/internal", tags=["internal"])
