"""
API v1 router aggregating all endpoints.
"""

from fastapi import APIRouter

from validtot.api.v1.admin import router as admin_router
from validtot.api.v1.posts import router as posts_router
from validtot.api.v1.votes import router as votes_router

router = APIRouter()

router.include_router(posts_router, prefix="/posts", tags=["Posts"])
router.include_router(votes_router, prefix="/votes", tags=["Votes"])
router.include_router(admin_router, prefix="/admin", tags=["Admin"])
