"""
Health check routes.

Endpoints for monitoring service health and configuration.
"""

from fastapi import APIRouter

from testgenius import __version__
from testgenius.config.settings import get_settings
from testgenius.llm import ModelRouter, load_defaults_from_env
from testgenius.utils.logger import get_logger

from ..models import HealthResponse

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Example:
        GET /api/health

        Response:
        {
            "status": "healthy",
            "version": "0.1.0",
            "services": {"gemini_api": "configured", "coder_model": "gemini-2.0-flash", ...}
        }
    """
    settings = get_settings()

    services = {
        "gemini_api": "configured" if settings.GOOGLE_API_KEY else "not_configured",
        "github_api": settings.GITHUB_API_URL,
        "config": "loaded",
    }
    for role, model_id in ModelRouter(load_defaults_from_env(settings)).primary_models().items():
        services[f"{role}_model"] = model_id

    status = "healthy" if settings.GOOGLE_API_KEY else "degraded"
    if status != "healthy":
        logger.debug("Health check degraded: Gemini API key not configured")

    return HealthResponse(status=status, version=__version__, services=services)


@router.get("/health/ready")
async def readiness_check() -> dict[str, object]:
    """Returns ready=False until a Gemini API key is configured."""
    settings = get_settings()

    if not settings.GOOGLE_API_KEY:
        return {"ready": False, "reason": "Gemini API key not configured"}

    return {"ready": True}


@router.get("/health/live")
async def liveness_check() -> dict[str, bool]:
    return {"alive": True}
