"""Fakes standing in for the ledger, sockets, and wall clock in unit tests."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import orjson

from auction_relay.auction.models import NO_BIDDER
from auction_relay.ledger import LedgerReadError
from auction_relay.realtime.fanout import Connection, ConnectionRegistry

ALICE = "0xAaAaAaAaAaAaAaAaAaAaAaAaAaAaAaAaAaAaAaAa"
BOB = "0xBbBbBbBbBbBbBbBbBbBbBbBbBbBbBbBbBbBbBbBb"
CAROL = "0xCcCcCcCcCcCcCcCcCcCcCcCcCcCcCcCcCcCcCcCc"

NOW = 1_700_000_000.0

CONFIG_DATA: dict[str, Any] = {
    "ledger": {"rpc_url": "http://ledger.invalid"},
    "identity": {"secret": "relay-test-secret-0123456789abcdef", "issuer": "auction-relay"},
    "sync": {"withdraw_resync_delay_seconds": 0.01},
    "auctions": [
        {"id": "101", "contract_address": "0xF4800bcC6e0690F4c7524e4347e098F618a3ff3F", "min_bid": "0.0001"},
        {"id": "102", "contract_address": "0x036b20234e5A20FB657fA698eB6c9853b40B2FaB", "min_bid": "0.0001"},
    ],
}


class ManualClock:
    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLedgerReader:
    """Ledger reader backed by plain attributes; ``fail`` names a call to break."""

    def __init__(
        self,
        *,
        end_time: int = int(NOW) + 600,
        highest_bid: str = "0",
        highest_bidder: str = NO_BIDDER,
        totals: dict[str, str] | None = None,
    ) -> None:
        self.end_time = end_time
        self.highest = Decimal(highest_bid)
        self.highest_address = highest_bidder
        self.totals = {address: Decimal(amount) for address, amount in (totals or {}).items()}
        self.fail: str | None = None
        self.calls = 0

    def set_total(self, address: str, amount: str) -> None:
        self.totals[address] = Decimal(amount)

    def _check(self, name: str) -> None:
        self.calls += 1
        if self.fail == name:
            raise LedgerReadError(f"{name} failed: boom")

    async def auction_end_time(self) -> int:
        self._check("auctionEndTime")
        return self.end_time

    async def highest_bid(self) -> Decimal:
        self._check("highestBid")
        return self.highest

    async def highest_bidder(self) -> str:
        self._check("highestBidder")
        return self.highest_address

    async def bid_of(self, address: str) -> Decimal:
        self._check("bids")
        for known, amount in self.totals.items():
            if known.lower() == address.lower():
                return amount
        return Decimal(0)

    async def bidder_at(self, index: int) -> str:
        self._check("bidders")
        return list(self.totals)[index]

    async def bidders_count(self) -> int:
        self._check("biddersCount")
        return len(self.totals)


class RecordingTransport:
    def __init__(self) -> None:
        self.frames: list[dict[str, Any]] = []
        self.broken = False

    async def send_text(self, data: str) -> None:
        if self.broken:
            raise RuntimeError("socket closed")
        self.frames.append(orjson.loads(data))

    def events(self, name: str) -> list[Any]:
        return [frame["data"] for frame in self.frames if frame["event"] == name]

    def names(self) -> list[str]:
        return [frame["event"] for frame in self.frames]


def join(registry: ConnectionRegistry, room: str, **kwargs: Any) -> RecordingTransport:
    transport = RecordingTransport()
    registry.join(Connection(transport=transport, room=room, **kwargs))
    return transport
