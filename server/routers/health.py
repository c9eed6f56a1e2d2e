"""
Health check endpoints for deployment.

Provides:
- /health - Basic liveness check (is the app running?)
- /ready - Readiness check (is the room registry wired up?)
- /metrics - Room and member counts for monitoring
"""

import json
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Response

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Set during app startup
_room_manager = None


def set_health_dependencies(room_manager=None):
    """Set dependencies for health checks."""
    global _room_manager
    _room_manager = room_manager


@router.get("/health")
async def health_check():
    """
    Basic liveness check.

    Always 200 while the process is alive.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready")
async def readiness_check():
    """Returns 503 until the relay's room registry is available."""
    ready = _room_manager is not None
    checks = {"rooms": {"status": "ok" if ready else "not_configured"}}
    return Response(
        content=json.dumps({
            "status": "ok" if ready else "degraded",
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }),
        status_code=200 if ready else 503,
        media_type="application/json",
    )


@router.get("/metrics")
async def metrics():
    """Operational counters for dashboards."""
    metrics_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if _room_manager is not None:
        rooms = _room_manager.rooms
        metrics_data.update({
            "active_rooms": len(rooms),
            "total_members": _room_manager.member_count(),
            "games_in_progress": sum(
                1 for r in rooms.values()
                if r.game_state and r.game_state.get("status") in ("dealing", "playing")
            ),
        })

    return metrics_data
