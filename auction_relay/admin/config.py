"""Expose currently loaded server config for debugging."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ..config import ServerConfig

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_config(request: Request) -> ServerConfig:
    return request.app.state.server_config


@router.get("/config")
async def config(request: Request, config: ServerConfig = Depends(_get_config)) -> dict:
    auctions = [
        {
            "id": auction.auction_id,
            "contract_address": auction.contract_address,
            "min_bid": float(auction.min_bid),
        }
        for auction in config.auctions
    ]
    return {
        "auctions": auctions,
        "poll_interval_seconds": config.sync.poll_interval_seconds,
        "heartbeat_seconds": config.sync.heartbeat_seconds,
        "withdraw_resync_delay_seconds": config.sync.withdraw_resync_delay_seconds,
        "event_channel": bool(config.ledger.ws_url),
        "identity_algorithm": config.identity.algorithm,
        "version": request.app.version,
    }
