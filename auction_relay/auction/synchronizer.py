"""Reconciles ledger state into the auction store and broadcasts the result."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Mapping

from ..ledger import LedgerReader, LedgerReadError
from ..ledger.events import LedgerEvent
from ..realtime.fanout import ConnectionRegistry
from .models import (
    LOBBY_ROOM,
    NO_BIDDER,
    AuctionSnapshot,
    BidEntry,
    BidHistoryUpdate,
    HighestBidUpdate,
    short_address,
    summary_for,
)
from .ranking import merge_highest_bidder, rank_entries
from .store import AuctionStateStore

logger = logging.getLogger(__name__)


@dataclass
class SyncStats:
    passes: int = 0
    failures: int = 0
    last_success_at: float | None = None
    last_error: str | None = None


class Synchronizer:
    def __init__(
        self,
        store: AuctionStateStore,
        readers: Mapping[str, LedgerReader],
        registry: ConnectionRegistry,
        *,
        withdraw_resync_delay: float = 1.5,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._readers = readers
        self._registry = registry
        self._withdraw_resync_delay = withdraw_resync_delay
        self._clock = clock
        self._tasks: set[asyncio.Task] = set()
        self.stats: dict[str, SyncStats] = {auction_id: SyncStats() for auction_id in store.ids()}

    async def reconcile(self, auction_id: str) -> AuctionSnapshot | None:
        """Run one reconciliation pass; returns None when a ledger read failed."""
        reader = self._readers[auction_id]
        stats = self.stats[auction_id]
        stats.passes += 1
        try:
            end_time, highest_bid, highest_bidder = await asyncio.gather(
                reader.auction_end_time(),
                reader.highest_bid(),
                reader.highest_bidder(),
            )
            entries = await self._collect_entries(auction_id, reader)
        except LedgerReadError as exc:
            stats.failures += 1
            stats.last_error = str(exc)
            logger.warning("reconciliation of auction %s aborted: %s", auction_id, exc)
            return None

        merge_highest_bidder(
            entries,
            highest_bidder,
            highest_bid,
            lambda address, amount: self._entry(auction_id, address, amount),
        )
        now = self._clock()
        snapshot = self._store.commit(
            auction_id,
            highest_bid=highest_bid,
            highest_bidder=highest_bidder,
            bid_history=rank_entries(entries.values()),
            auction_end_time=end_time,
            ended=now >= end_time,
        )
        stats.last_success_at = now
        stats.last_error = None
        logger.debug(
            "auction %s reconciled: highest=%s bidders=%d ended=%s",
            auction_id,
            snapshot.highest_bid,
            len(snapshot.bid_history),
            snapshot.ended,
        )
        await self.broadcast(snapshot)
        return snapshot

    async def _collect_entries(self, auction_id: str, reader: LedgerReader) -> dict[str, BidEntry]:
        entries: dict[str, BidEntry] = {}
        count = await reader.bidders_count()
        for index in range(count):
            address = await reader.bidder_at(index)
            total = await reader.bid_of(address)
            if total > 0:
                entries[address.lower()] = self._entry(auction_id, address, total)
        return entries

    def _entry(self, auction_id: str, address: str, amount: Decimal) -> BidEntry:
        names = self._registry.display_names(auction_id)
        return BidEntry(
            bidder_label=names.get(address.lower()) or short_address(address),
            wallet_address=address,
            amount=amount,
            observed_at=int(self._clock() * 1000),
        )

    def _bidder_name(self, snapshot: AuctionSnapshot) -> str:
        if snapshot.highest_bidder == NO_BIDDER:
            return NO_BIDDER
        names = self._registry.display_names(snapshot.auction_id)
        return names.get(snapshot.highest_bidder.lower(), snapshot.highest_bidder)

    async def broadcast(self, snapshot: AuctionSnapshot) -> None:
        room = snapshot.auction_id
        await self._registry.emit(room, self.highest_bid_event(snapshot))
        await self._registry.emit(room, BidHistoryUpdate(snapshot.bid_history))
        await self._registry.emit(LOBBY_ROOM, summary_for(snapshot, self._clock()))

    def highest_bid_event(self, snapshot: AuctionSnapshot) -> HighestBidUpdate:
        return HighestBidUpdate(
            auction_id=snapshot.auction_id,
            amount=snapshot.highest_bid,
            bidder_name=self._bidder_name(snapshot),
        )

    async def reconcile_all(self) -> None:
        await asyncio.gather(*(self.reconcile(auction_id) for auction_id in self._store.ids()))

    def request_reconcile(self, auction_id: str, *, delay: float = 0) -> asyncio.Task:
        """Schedule a pass as an independent task so slow reads never block the caller."""
        task = asyncio.create_task(self._delayed_reconcile(auction_id, delay))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _delayed_reconcile(self, auction_id: str, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        await self.reconcile(auction_id)

    async def run_periodic(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            for auction_id in self._store.ids():
                self.request_reconcile(auction_id)

    async def handle_ledger_event(self, auction_id: str, event: LedgerEvent) -> None:
        if auction_id not in self._store:
            return
        if event is LedgerEvent.AUCTION_ENDED:
            self._store.mark_ended(auction_id)
        self.request_reconcile(auction_id)

    async def note_withdrawal(self, auction_id: str, wallet_address: str) -> AuctionSnapshot:
        """Zero the wallet's displayed amount now, confirm against the ledger shortly after."""
        snapshot = self._store.zero_entry(auction_id, wallet_address)
        await self._registry.emit(auction_id, BidHistoryUpdate(snapshot.bid_history))
        self.request_reconcile(auction_id, delay=self._withdraw_resync_delay)
        return snapshot

    async def close(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
