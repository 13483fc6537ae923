"""API routes."""

from fastapi import APIRouter

from tableready.api.routes import venues, waitlist

api_router = APIRouter()

api_router.include_router(venues.router, prefix="/venues", tags=["venues"])
api_router.include_router(waitlist.router, tags=["waitlist"])
