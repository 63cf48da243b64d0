"""API route modules."""

from fastapi import APIRouter

from wikihub.entrypoints.api.routes.auth import router as token_router
from wikihub.entrypoints.api.routes.slack import router as slack_router

# Browser-facing OAuth routes, mounted at the root
auth_router = APIRouter()

auth_router.include_router(slack_router)
auth_router.include_router(token_router)

__all__ = ["auth_router"]
