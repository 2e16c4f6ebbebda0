"""
API v1 package.

Contains versioned API routes for owner email verification and the mail relay.
"""

from fastapi import APIRouter

from src.api.v1.mail import router as mail_router
from src.api.v1.routes import router as verification_router

router = APIRouter()
router.include_router(verification_router)
router.include_router(mail_router)

__all__ = ["router"]
