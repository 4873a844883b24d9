"""Expose live connection inventory."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from ..realtime.fanout import ConnectionRegistry

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_registry(request: Request) -> ConnectionRegistry:
    return request.app.state.registry


@router.get("/connections")
async def connections(registry: ConnectionRegistry = Depends(_get_registry)) -> list[dict[str, Any]]:
    inventory = []
    for room in sorted(registry.room_sizes()):
        for connection in registry.members(room):
            inventory.append(
                {
                    "id": connection.connection_id,
                    "room": room,
                    "name": connection.name,
                    "mode": connection.mode,
                    "subject": connection.identity.subject if connection.identity else None,
                    "wallet_address": connection.wallet_address,
                }
            )
    return inventory
