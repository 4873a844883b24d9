from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request, WebSocket
from jsonschema import ValidationError

from .admin import config as admin_config
from .admin import connections as admin_connections
from .admin import health as admin_health
from .admin import stats as admin_stats
from .auction.countdown import CountdownBroadcaster
from .auction.models import amount_to_wire, summary_for
from .auction.store import AuctionStateStore
from .auction.synchronizer import Synchronizer
from .config import ServerConfig, get_server_config
from .identity import IdentityProvider
from .ledger import LedgerReader, build_readers
from .ledger.events import LedgerEventWatcher
from .realtime.fanout import ConnectionRegistry
from .realtime.router import ConnectionRouter
from .validation.validator import SchemaRegistry, get_schema_registry

logger = logging.getLogger(__name__)

ReaderFactory = Callable[[ServerConfig], Mapping[str, LedgerReader]]


def _default_readers(config: ServerConfig) -> Mapping[str, LedgerReader]:
    return build_readers(config.ledger, config.auctions)


def create_app(
    *,
    config_loader: Callable[[], ServerConfig] = get_server_config,
    reader_factory: ReaderFactory = _default_readers,
    run_background: bool = True,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        server_config = config_loader()
        schema_registry = get_schema_registry()
        store = AuctionStateStore(server_config.auctions)
        registry = ConnectionRegistry()
        identity = IdentityProvider(server_config.identity)
        synchronizer = Synchronizer(
            store,
            reader_factory(server_config),
            registry,
            withdraw_resync_delay=server_config.sync.withdraw_resync_delay_seconds,
            clock=clock,
        )
        countdown = CountdownBroadcaster(store, registry, synchronizer, clock=clock)
        connection_router = ConnectionRouter(
            store,
            registry,
            synchronizer,
            identity,
            schema_registry,
            clock=clock,
        )

        app.state.server_config = server_config
        app.state.schema_registry = schema_registry
        app.state.store = store
        app.state.registry = registry
        app.state.identity = identity
        app.state.synchronizer = synchronizer
        app.state.countdown = countdown
        app.state.connection_router = connection_router
        app.state.start_time = datetime.now(timezone.utc)

        await synchronizer.reconcile_all()

        tasks: list[asyncio.Task] = []
        if run_background:
            watcher = LedgerEventWatcher(
                server_config.ledger.ws_url,
                {auction.auction_id: auction.contract_address for auction in server_config.auctions},
                synchronizer.handle_ledger_event,
                reconnect_seconds=server_config.ledger.event_reconnect_seconds,
            )
            tasks = [
                asyncio.create_task(synchronizer.run_periodic(server_config.sync.poll_interval_seconds)),
                asyncio.create_task(countdown.run(server_config.sync.heartbeat_seconds)),
                asyncio.create_task(watcher.run()),
            ]
        logger.info("relay serving %d auctions", len(server_config.auctions))

        yield

        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await synchronizer.close()

    app = FastAPI(
        title="Auction Relay",
        version="1.0.0",
        docs_url="/docs",
        lifespan=lifespan,
    )

    app.include_router(admin_health.router)
    app.include_router(admin_stats.router)
    app.include_router(admin_config.router)
    app.include_router(admin_connections.router)
    _register_routes(app, clock)
    return app


# Dependency helpers ---------------------------------------------------------


def get_server_settings(request: Request) -> ServerConfig:
    return request.app.state.server_config


def get_schema_service(request: Request) -> SchemaRegistry:
    return request.app.state.schema_registry


def get_store(request: Request) -> AuctionStateStore:
    return request.app.state.store


def get_synchronizer(request: Request) -> Synchronizer:
    return request.app.state.synchronizer


def get_connection_router(websocket: WebSocket) -> ConnectionRouter:
    return websocket.app.state.connection_router


# Routes ---------------------------------------------------------------------


def _register_routes(app: FastAPI, clock: Callable[[], float]) -> None:
    @app.get("/", tags=["meta"])
    async def root(settings: ServerConfig = Depends(get_server_settings)) -> dict[str, Any]:
        return {
            "service": "auction-relay",
            "version": app.version,
            "auctions": [auction.auction_id for auction in settings.auctions],
            "sync": {
                "poll_interval_seconds": settings.sync.poll_interval_seconds,
                "heartbeat_seconds": settings.sync.heartbeat_seconds,
            },
        }

    @app.get("/api/auction-details", tags=["auction"])
    async def auction_details(
        auction_id: str = Query("101", alias="id"),
        store: AuctionStateStore = Depends(get_store),
    ) -> dict[str, Any]:
        try:
            snapshot = store.get(auction_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=f"unknown auction {auction_id}") from exc
        return {
            "ok": True,
            "auctionId": snapshot.auction_id,
            "contractAddress": snapshot.contract_address,
            "minBid": amount_to_wire(snapshot.min_bid),
            "highestBid": amount_to_wire(snapshot.highest_bid),
            "auctionEndTime": snapshot.auction_end_time,
            "ended": snapshot.ended,
        }

    @app.get("/api/auctions", tags=["auction"])
    async def auctions(store: AuctionStateStore = Depends(get_store)) -> list[dict[str, Any]]:
        now = clock()
        return [summary_for(snapshot, now).to_payload() for snapshot in store.all()]

    @app.post("/api/withdrawn", tags=["auction"])
    async def withdrawn(
        payload: dict[str, Any] = Body(...),
        schemas: SchemaRegistry = Depends(get_schema_service),
        synchronizer: Synchronizer = Depends(get_synchronizer),
    ) -> dict[str, bool]:
        try:
            schemas.validate("withdrawal_notice", payload)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc.message)) from exc
        try:
            await synchronizer.note_withdrawal(payload["auctionId"], payload["walletAddress"])
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=f"unknown auction {payload['auctionId']}") from exc
        return {"ok": True}

    @app.websocket("/ws")
    async def realtime(websocket: WebSocket, router: ConnectionRouter = Depends(get_connection_router)) -> None:
        await router.serve(websocket)


app = create_app()
