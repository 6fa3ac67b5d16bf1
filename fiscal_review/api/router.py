"""
Top-level API router.
Combines all sub-routers into a single router.
"""

from fastapi import APIRouter

from fiscal_review.api.health import router as health_router
from fiscal_review.api.reports import router as reports_router
from fiscal_review.api.reviews import router as reviews_router
from fiscal_review.api.signatures import router as signatures_router
from fiscal_review.api.reviewers import router as reviewers_router

api_router = APIRouter()

api_router.include_router(health_router)
api_router.include_router(reports_router)
api_router.include_router(reviews_router)
api_router.include_router(signatures_router)
api_router.include_router(reviewers_router)
