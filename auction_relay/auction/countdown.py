"""One-second heartbeat that pushes remaining time for every auction."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from ..realtime.fanout import ConnectionRegistry
from .models import LOBBY_ROOM, AuctionStateUpdate, TimerUpdate
from .store import AuctionStateStore
from .synchronizer import Synchronizer

logger = logging.getLogger(__name__)


class CountdownBroadcaster:
    def __init__(
        self,
        store: AuctionStateStore,
        registry: ConnectionRegistry,
        synchronizer: Synchronizer,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._registry = registry
        self._synchronizer = synchronizer
        self._clock = clock
        # Rooms that already received their final timerUpdate.
        self._announced_end: set[str] = set()

    async def tick(self) -> None:
        now = self._clock()
        for auction_id in self._store.ids():
            snapshot = self._store.get(auction_id)
            # Never reconciled yet; an unknown end time must not end the auction.
            synced = bool(snapshot.auction_end_time) or snapshot.ended
            time_left = snapshot.time_left(now)
            ended = synced and (time_left <= 0 or snapshot.ended)

            if ended and not snapshot.ended:
                self._store.mark_ended(auction_id)
                logger.info("auction %s ended, fetching final ledger state", auction_id)
                self._synchronizer.request_reconcile(auction_id)

            if synced and auction_id not in self._announced_end:
                await self._registry.emit(
                    auction_id,
                    TimerUpdate(auction_id=auction_id, seconds=time_left, ended=ended),
                )
                if ended:
                    self._announced_end.add(auction_id)
            await self._registry.emit(
                LOBBY_ROOM,
                AuctionStateUpdate(
                    auction_id=auction_id,
                    highest_bid=snapshot.highest_bid,
                    ended=ended,
                    time_left=time_left,
                ),
            )

    async def run(self, period: float = 1.0) -> None:
        while True:
            started = self._clock()
            try:
                await self.tick()
            except Exception:
                logger.exception("countdown tick failed")
            elapsed = self._clock() - started
            await asyncio.sleep(max(0.0, period - elapsed))
