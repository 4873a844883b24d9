"""Room membership and broadcast fan-out for live connections."""

from __future__ import annotations

import itertools
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Protocol

from ..auction.models import RelayEvent
from ..identity import Identity
from .wire import encode_frame

logger = logging.getLogger(__name__)

_connection_ids = itertools.count(1)


class FrameTransport(Protocol):
    async def send_text(self, data: str) -> None: ...


@dataclass(eq=False)
class Connection:
    transport: FrameTransport
    room: str
    name: str = "Guest"
    mode: str = "watch"
    identity: Identity | None = None
    wallet_address: str | None = None
    connection_id: int = field(default_factory=lambda: next(_connection_ids))


class ConnectionRegistry:
    def __init__(self) -> None:
        self._rooms: dict[str, set[Connection]] = defaultdict(set)

    def join(self, connection: Connection) -> None:
        self._rooms[connection.room].add(connection)
        logger.info(
            "connection %s (%s) joined room %s, %d in room",
            connection.connection_id,
            connection.name,
            connection.room,
            len(self._rooms[connection.room]),
        )

    def leave(self, connection: Connection) -> None:
        members = self._rooms.get(connection.room)
        if not members or connection not in members:
            return
        members.discard(connection)
        if not members:
            del self._rooms[connection.room]
        logger.info("connection %s left room %s", connection.connection_id, connection.room)

    def members(self, room: str) -> list[Connection]:
        return list(self._rooms.get(room, ()))

    def room_sizes(self) -> dict[str, int]:
        return {room: len(members) for room, members in self._rooms.items()}

    def display_names(self, room: str) -> dict[str, str]:
        """Lowercase wallet address -> display name for connections in ``room``."""
        names: dict[str, str] = {}
        for connection in self.members(room):
            if connection.wallet_address and connection.name:
                names[connection.wallet_address.lower()] = connection.name
        return names

    async def send(self, connection: Connection, event: RelayEvent) -> bool:
        return await self._deliver(connection, encode_frame(event))

    async def emit(self, room: str, event: RelayEvent) -> int:
        """Send ``event`` to every member of ``room``; returns the delivery count."""
        frame = encode_frame(event)
        delivered = 0
        for connection in self.members(room):
            if await self._deliver(connection, frame):
                delivered += 1
        return delivered

    async def _deliver(self, connection: Connection, frame: str) -> bool:
        try:
            await connection.transport.send_text(frame)
        except Exception as exc:
            logger.info("dropping connection %s after failed send: %s", connection.connection_id, exc)
            self.leave(connection)
            return False
        return True
