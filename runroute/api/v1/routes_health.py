# runroute/api/v1/routes_health.py
from fastapi import APIRouter
from runroute.core.config import settings

router = APIRouter(
    prefix="/health",
    tags=["health"],
)


@router.get("/", summary="Health check")
async def health_check():
    """
    Simple health check endpoint to verify that the API is running.
    """
    return {
        "status": "ok",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "directions_configured": bool(settings.ORS_API_KEY),
        "ai_scoring_configured": bool(settings.OPENAI_API_KEY),
    }
