"""Configuration helpers for the relay server."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml

_DEFAULT_SERVER_CONFIG = Path(__file__).resolve().parent / "server.yaml"


@dataclass(frozen=True)
class LedgerConfig:
    rpc_url: str
    ws_url: str | None
    read_timeout_seconds: float
    event_reconnect_seconds: float


@dataclass(frozen=True)
class IdentityConfig:
    secret: str
    algorithm: str
    issuer: str
    token_ttl_seconds: int
    require_verified: bool
    public_key_pem: str = ""
    private_key_pem: str = ""


@dataclass(frozen=True)
class SyncConfig:
    poll_interval_seconds: float
    heartbeat_seconds: float
    withdraw_resync_delay_seconds: float


@dataclass(frozen=True)
class AuctionConfig:
    auction_id: str
    contract_address: str
    min_bid: Decimal


@dataclass(frozen=True)
class ServerConfig:
    listen: Mapping[str, Any]
    ledger: LedgerConfig
    identity: IdentityConfig
    sync: SyncConfig
    auctions: tuple[AuctionConfig, ...]


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    return yaml.safe_load(path.read_text()) or {}


def parse_server_config(data: Mapping[str, Any]) -> ServerConfig:
    ledger = data.get("ledger", {})
    identity = data.get("identity", {})
    sync = data.get("sync", {})
    auctions = []
    for item in data.get("auctions", []):
        auctions.append(
            AuctionConfig(
                auction_id=str(item["id"]),
                contract_address=str(item["contract_address"]),
                min_bid=Decimal(str(item.get("min_bid", "0.0001"))),
            )
        )
    if not auctions:
        raise ValueError("at least one auction must be configured")
    return ServerConfig(
        listen=data.get("listen", {}),
        ledger=LedgerConfig(
            rpc_url=os.getenv("AUCTION_RELAY_RPC_URL", str(ledger.get("rpc_url", ""))),
            ws_url=os.getenv("AUCTION_RELAY_WS_URL", ledger.get("ws_url")) or None,
            read_timeout_seconds=float(ledger.get("read_timeout_seconds", 10)),
            event_reconnect_seconds=float(ledger.get("event_reconnect_seconds", 30)),
        ),
        identity=IdentityConfig(
            secret=os.getenv("AUCTION_RELAY_JWT_SECRET", str(identity.get("secret", ""))),
            algorithm=str(identity.get("algorithm", "HS256")),
            issuer=str(identity.get("issuer", "auction-relay")),
            token_ttl_seconds=int(identity.get("token_ttl_seconds", 3600)),
            require_verified=bool(identity.get("require_verified", True)),
            public_key_pem=str(identity.get("public_key_pem", "")),
            private_key_pem=str(identity.get("private_key_pem", "")),
        ),
        sync=SyncConfig(
            poll_interval_seconds=float(sync.get("poll_interval_seconds", 30)),
            heartbeat_seconds=float(sync.get("heartbeat_seconds", 1)),
            withdraw_resync_delay_seconds=float(sync.get("withdraw_resync_delay_seconds", 1.5)),
        ),
        auctions=tuple(auctions),
    )


@lru_cache(maxsize=1)
def get_server_config() -> ServerConfig:
    path = Path(os.getenv("AUCTION_RELAY_CONFIG_PATH", _DEFAULT_SERVER_CONFIG))
    return parse_server_config(_load_yaml(path))
