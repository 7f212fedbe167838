"""
Health Check Routes
===================

Endpoints for health monitoring and service status.

Includes:
- Basic health check
- Detailed service information
"""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends

from phone_agent import __version__
from phone_agent.api.deps import get_app_settings
from phone_agent.config import Settings

router = APIRouter(prefix="/health", tags=["Health"])


@router.get(
    "",
    summary="Basic health check",
    response_description="Service health status",
)
async def health_check() -> dict[str, str]:
    """
    Basic health check endpoint.

    Returns:
        Simple status message indicating service is running.
    """
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get(
    "/info",
    summary="Service information",
)
async def service_info(
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    """
    Service information: version, model provider and agent limits.

    API keys are reported only as configured or not.
    """
    return {
        "service": "Phone Agent",
        "version": __version__,
        "llm": {
            "provider": settings.llm.llm_provider,
            "model": settings.llm.get_active_model(),
            "api_key_configured": bool(settings.llm.get_active_api_key()),
        },
        "agent": {
            "max_steps": settings.agent.autoglm_max_steps,
            "max_parse_retries": settings.agent.max_parse_retries,
            "action_delay": settings.agent.action_delay,
        },
        "debug": settings.server.debug,
    }
