"""API router aggregation."""

from fastapi import APIRouter

from app.api.routes.auth import router as auth_router
from app.api.routes.donors import router as donors_router
from app.api.routes.organizations import router as organizations_router
from app.api.routes.public import router as public_router

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(donors_router)
api_router.include_router(organizations_router)
api_router.include_router(public_router)
