"""
API v1 routes.
"""

from fastapi import APIRouter
from careerbird.api.v1 import auth, profiles, grants, applications, dashboard

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(profiles.router, prefix="/profiles", tags=["profiles"])
api_router.include_router(grants.router, prefix="/grants", tags=["grants"])
api_router.include_router(applications.router, prefix="/applications", tags=["applications"])
api_router.include_router(dashboard.router, prefix="", tags=["dashboard"])
