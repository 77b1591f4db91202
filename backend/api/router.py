from __future__ import annotations

from fastapi import APIRouter

from api.routes import enrollments, scheduling


api_router = APIRouter()
# Role checks live on each route: scheduling mixes admin and student endpoints.
api_router.include_router(scheduling.router, prefix="/scheduling", tags=["scheduling"])
api_router.include_router(enrollments.router, prefix="/enrollments", tags=["enrollments"])
