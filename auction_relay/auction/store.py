"""In-memory store of reconciled auction snapshots."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Iterable

from ..config import AuctionConfig
from .models import AuctionSnapshot, BidEntry
from .ranking import rank_entries


class AuctionStateStore:
    """Maps auction id to its latest snapshot.

    Snapshots are immutable; every write swaps the stored reference, so a
    reader holding a snapshot never sees a partially applied update.
    """

    def __init__(self, auctions: Iterable[AuctionConfig]) -> None:
        self._snapshots: dict[str, AuctionSnapshot] = {}
        for auction in auctions:
            self._snapshots[auction.auction_id] = AuctionSnapshot(
                auction_id=auction.auction_id,
                contract_address=auction.contract_address,
                min_bid=auction.min_bid,
            )

    def __contains__(self, auction_id: object) -> bool:
        return auction_id in self._snapshots

    def ids(self) -> list[str]:
        return list(self._snapshots)

    def get(self, auction_id: str) -> AuctionSnapshot:
        try:
            return self._snapshots[auction_id]
        except KeyError as exc:
            raise KeyError(f"auction {auction_id} not found") from exc

    def all(self) -> list[AuctionSnapshot]:
        return list(self._snapshots.values())

    def commit(
        self,
        auction_id: str,
        *,
        highest_bid: Decimal,
        highest_bidder: str,
        bid_history: tuple[BidEntry, ...],
        auction_end_time: int,
        ended: bool,
    ) -> AuctionSnapshot:
        current = self.get(auction_id)
        updated = replace(
            current,
            highest_bid=highest_bid,
            highest_bidder=highest_bidder,
            bid_history=bid_history,
            auction_end_time=max(current.auction_end_time, auction_end_time),
            ended=current.ended or ended,
        )
        self._snapshots[auction_id] = updated
        return updated

    def mark_ended(self, auction_id: str) -> AuctionSnapshot:
        current = self.get(auction_id)
        if current.ended:
            return current
        updated = replace(current, ended=True)
        self._snapshots[auction_id] = updated
        return updated

    def zero_entry(self, auction_id: str, wallet_address: str) -> AuctionSnapshot:
        """Zero one bidder's displayed amount until the next reconciliation."""
        current = self.get(auction_id)
        key = wallet_address.lower()
        history = [
            replace(entry, amount=Decimal(0)) if entry.key == key else entry
            for entry in current.bid_history
        ]
        updated = replace(current, bid_history=rank_entries(history))
        self._snapshots[auction_id] = updated
        return updated
