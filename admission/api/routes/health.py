from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness check, exempt from admission control.

    Returns:
        dict: ``status`` plus whether the counter sweeper thread is alive.
    """

    sweeper = getattr(request.app.state, "sweeper", None)
    return {
        "status": "ok",
        "sweeper_running": bool(sweeper and sweeper.running),
    }
