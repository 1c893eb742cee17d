"""
API v1 router initialization and setup.
"""
from fastapi import APIRouter
from .endpoints import accounts, claims, review

api_router = APIRouter()

api_router.include_router(
    claims.router,
    prefix="/claims",
    tags=["claims"]
)

api_router.include_router(
    review.router,
    prefix="/review",
    tags=["review"]
)

api_router.include_router(
    accounts.router,
    prefix="/accounts",
    tags=["accounts"]
)
