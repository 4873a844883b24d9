"""Classifies live connections as lobby observers or auction participants."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Mapping

from fastapi import WebSocket, WebSocketDisconnect, status
from jsonschema import ValidationError

from ..auction.models import LOBBY_ROOM, BidHistoryUpdate, summary_for, timer_for
from ..auction.store import AuctionStateStore
from ..auction.synchronizer import Synchronizer
from ..identity import AuthError, Identity, IdentityProvider
from ..validation.validator import SchemaRegistry
from .fanout import Connection, ConnectionRegistry, FrameTransport

logger = logging.getLogger(__name__)


class ConnectionRefused(ValueError):
    """Raised when a connection may not join the room it asked for."""


@dataclass(frozen=True)
class ConnectionIntent:
    room: str
    name: str
    mode: str
    wallet_address: str | None
    token: str | None

    @property
    def is_lobby(self) -> bool:
        return self.room == LOBBY_ROOM


class ConnectionRouter:
    def __init__(
        self,
        store: AuctionStateStore,
        registry: ConnectionRegistry,
        synchronizer: Synchronizer,
        identity: IdentityProvider,
        schemas: SchemaRegistry,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._registry = registry
        self._synchronizer = synchronizer
        self._identity = identity
        self._schemas = schemas
        self._clock = clock

    def parse_intent(self, params: Mapping[str, str], authorization: str | None = None) -> ConnectionIntent:
        query = {key: value for key, value in params.items() if value != ""}
        query.setdefault("id", LOBBY_ROOM)
        try:
            self._schemas.validate("connection_intent", query)
        except ValidationError as exc:
            raise ConnectionRefused(exc.message) from exc
        token = query.get("token")
        if not token and authorization and authorization.lower().startswith("bearer "):
            token = authorization[7:].strip()
        return ConnectionIntent(
            room=query["id"],
            name=query.get("name", "Guest"),
            mode=query.get("mode", "watch"),
            wallet_address=query.get("walletAddress"),
            token=token or None,
        )

    def authorize(self, intent: ConnectionIntent) -> Identity | None:
        """Lobby observers need no identity; auction participants need a verified one."""
        if intent.is_lobby:
            return None
        if intent.room not in self._store:
            raise ConnectionRefused(f"unknown auction {intent.room}")
        try:
            identity = self._identity.verify(intent.token)
        except AuthError as exc:
            raise ConnectionRefused(str(exc)) from exc
        if not self._identity.is_verified(identity):
            raise ConnectionRefused("identity not verified")
        return identity

    async def admit(
        self,
        transport: FrameTransport,
        intent: ConnectionIntent,
        identity: Identity | None,
    ) -> Connection:
        connection = Connection(
            transport=transport,
            room=intent.room,
            name=intent.name,
            mode=intent.mode,
            identity=identity,
            wallet_address=intent.wallet_address,
        )
        self._registry.join(connection)
        await self.replay(connection)
        return connection

    async def replay(self, connection: Connection) -> None:
        """Send the current picture so the client needs no heartbeat to render."""
        now = self._clock()
        if connection.room == LOBBY_ROOM:
            for snapshot in self._store.all():
                await self._registry.send(connection, summary_for(snapshot, now))
            return
        snapshot = self._store.get(connection.room)
        await self._registry.send(connection, self._synchronizer.highest_bid_event(snapshot))
        await self._registry.send(connection, BidHistoryUpdate(snapshot.bid_history))
        await self._registry.send(connection, timer_for(snapshot, now))

    async def serve(self, websocket: WebSocket) -> None:
        try:
            intent = self.parse_intent(
                websocket.query_params,
                websocket.headers.get("authorization"),
            )
            identity = self.authorize(intent)
        except ConnectionRefused as exc:
            logger.info("refusing connection: %s", exc)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(exc))
            return
        await websocket.accept()
        connection = await self.admit(websocket, intent, identity)
        try:
            while True:
                # Clients have nothing to tell us; keep reading to notice disconnects.
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
        except WebSocketDisconnect:
            pass
        finally:
            self._registry.leave(connection)
