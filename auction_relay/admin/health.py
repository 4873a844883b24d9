"""Liveness and ledger-sync health."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    state = request.app.state
    start_time = getattr(state, "start_time", None)
    uptime = int((datetime.now(timezone.utc) - start_time).total_seconds()) if start_time else 0
    # An auction whose latest pass failed still serves its last good snapshot.
    stale = sorted(
        auction_id for auction_id, stats in state.synchronizer.stats.items() if stats.last_error is not None
    )
    return {
        "status": "degraded" if stale else "healthy",
        "uptime_seconds": uptime,
        "version": request.app.version,
        "auctions": len(state.server_config.auctions),
        "stale_auctions": stale,
        "connections": sum(state.registry.room_sizes().values()),
    }
