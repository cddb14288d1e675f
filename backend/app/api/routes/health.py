"""Health check routes"""

from fastapi import APIRouter

from config import config

router = APIRouter()


@router.get("/")
async def root():
    return {"message": "Ad Alignment Evaluator API", "status": "running"}


@router.get("/health")
async def health_check():
    """Health check endpoint for monitoring"""
    return {
        "status": "healthy",
        "service": "Ad Alignment Evaluator",
        "version": "1.0.0",
        "environment": config.ENVIRONMENT,
        "vision_configured": bool(config.ANTHROPIC_API_KEY),
        "screenshots_configured": bool(config.SCREENSHOT_API_KEY),
    }
