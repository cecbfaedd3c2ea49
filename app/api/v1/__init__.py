"""API v1 routes."""

from fastapi import APIRouter

from app.api.v1 import auth, events, health, secure, users

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(secure.router, prefix="/secure", tags=["secure"])
router.include_router(events.router, prefix="/events", tags=["events"])
