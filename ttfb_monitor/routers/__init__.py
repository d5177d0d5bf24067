# API routers for the TTFB monitor

from fastapi import APIRouter

from .ttfb import router as ttfb_router

router = APIRouter()
router.include_router(ttfb_router)
