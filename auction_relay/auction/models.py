"""Shared auction data structures and the events pushed to connected clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, ClassVar

NO_BIDDER = "-"
LOBBY_ROOM = "lobby"


def short_address(address: str | None) -> str:
    if not address or address == NO_BIDDER:
        return NO_BIDDER
    return f"{address[:6]}...{address[-4:]}"


def amount_to_wire(amount: Decimal) -> float:
    return float(amount)


@dataclass(frozen=True)
class BidEntry:
    bidder_label: str
    wallet_address: str
    amount: Decimal
    observed_at: int

    @property
    def key(self) -> str:
        return self.wallet_address.lower()

    def to_payload(self) -> dict[str, Any]:
        return {
            "bidderName": self.bidder_label,
            "walletAddress": self.wallet_address,
            "amount": amount_to_wire(self.amount),
            "ts": self.observed_at,
        }


@dataclass(frozen=True)
class AuctionSnapshot:
    auction_id: str
    contract_address: str
    min_bid: Decimal
    highest_bid: Decimal = Decimal(0)
    highest_bidder: str = NO_BIDDER
    bid_history: tuple[BidEntry, ...] = ()
    auction_end_time: int = 0
    ended: bool = False

    @property
    def has_bidder(self) -> bool:
        return self.highest_bidder != NO_BIDDER

    def time_left(self, now: float) -> int:
        return max(0, self.auction_end_time - int(now))


@dataclass(frozen=True)
class HighestBidUpdate:
    name: ClassVar[str] = "highestBidUpdate"

    auction_id: str
    amount: Decimal
    bidder_name: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "auctionId": self.auction_id,
            "amount": amount_to_wire(self.amount),
            "bidderName": self.bidder_name,
        }


@dataclass(frozen=True)
class BidHistoryUpdate:
    name: ClassVar[str] = "bidHistoryUpdate"

    entries: tuple[BidEntry, ...] = field(default_factory=tuple)

    def to_payload(self) -> list[dict[str, Any]]:
        return [entry.to_payload() for entry in self.entries]


@dataclass(frozen=True)
class TimerUpdate:
    name: ClassVar[str] = "timerUpdate"

    auction_id: str
    seconds: int
    ended: bool

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.auction_id, "seconds": self.seconds, "ended": self.ended}


@dataclass(frozen=True)
class AuctionStateUpdate:
    name: ClassVar[str] = "auctionStateUpdate"

    auction_id: str
    highest_bid: Decimal
    ended: bool
    time_left: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "auctionId": self.auction_id,
            "highestBid": amount_to_wire(self.highest_bid),
            "ended": self.ended,
            "timeLeft": self.time_left,
        }


RelayEvent = HighestBidUpdate | BidHistoryUpdate | TimerUpdate | AuctionStateUpdate


def envelope(event: RelayEvent) -> dict[str, Any]:
    return {"event": event.name, "data": event.to_payload()}


def summary_for(snapshot: AuctionSnapshot, now: float) -> AuctionStateUpdate:
    return AuctionStateUpdate(
        auction_id=snapshot.auction_id,
        highest_bid=snapshot.highest_bid,
        ended=snapshot.ended,
        time_left=snapshot.time_left(now),
    )


def timer_for(snapshot: AuctionSnapshot, now: float) -> TimerUpdate:
    return TimerUpdate(
        auction_id=snapshot.auction_id,
        seconds=snapshot.time_left(now),
        ended=snapshot.ended,
    )
