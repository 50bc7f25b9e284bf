"""
API routes for the lease calculator.
"""

from fastapi import APIRouter

from app.api import calculations, currency, exports

router = APIRouter()

# Include sub-routers
router.include_router(calculations.router, prefix="/calculate", tags=["calculations"])
router.include_router(currency.router, prefix="/currencies", tags=["currencies"])
router.include_router(exports.router, prefix="/export", tags=["exports"])
