"""Operational stats endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from ..auction.store import AuctionStateStore
from ..auction.synchronizer import Synchronizer
from ..realtime.fanout import ConnectionRegistry

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_synchronizer(request: Request) -> Synchronizer:
    return request.app.state.synchronizer


def _get_store(request: Request) -> AuctionStateStore:
    return request.app.state.store


def _get_registry(request: Request) -> ConnectionRegistry:
    return request.app.state.registry


@router.get("/stats")
async def stats(
    synchronizer: Synchronizer = Depends(_get_synchronizer),
    store: AuctionStateStore = Depends(_get_store),
    registry: ConnectionRegistry = Depends(_get_registry),
) -> dict[str, Any]:
    room_sizes = registry.room_sizes()
    auctions: dict[str, Any] = {}
    for snapshot in store.all():
        sync_stats = synchronizer.stats[snapshot.auction_id]
        failure_rate = (sync_stats.failures / sync_stats.passes) if sync_stats.passes else 0.0
        auctions[snapshot.auction_id] = {
            "passes": sync_stats.passes,
            "failures": sync_stats.failures,
            "failure_rate": round(failure_rate, 4),
            "last_success_at": sync_stats.last_success_at,
            "last_error": sync_stats.last_error,
            "bidders": len(snapshot.bid_history),
            "ended": snapshot.ended,
            "participants": room_sizes.get(snapshot.auction_id, 0),
        }
    return {
        "total_connections": sum(room_sizes.values()),
        "rooms": room_sizes,
        "auctions": auctions,
    }
