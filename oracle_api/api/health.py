# oracle_api/api/health.py - Health check endpoints
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from oracle_api.config.base import AppSettings, get_settings

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness_check(settings: AppSettings = Depends(get_settings)) -> Dict[str, Any]:
    """
    Liveness check for the process supervisor.
    Returns 200 while the application is running; it never touches the RPC node.
    """
    return {
        "alive": True,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "mode": settings.APP_ENV,
    }
