"""Best-effort subscription to auction contract logs."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping

from web3 import AsyncWeb3, Web3, WebSocketProvider

from .abi import EVENT_SIGNATURES

logger = logging.getLogger(__name__)


class LedgerEvent(str, Enum):
    BID_PLACED = "BidPlaced"
    NEW_HIGH_BID = "NewHighBid"
    WITHDRAWN = "Withdrawn"
    AUCTION_ENDED = "AuctionEnded"


EventCallback = Callable[[str, LedgerEvent], Awaitable[None]]

_TOPICS: dict[str, LedgerEvent] = {
    Web3.to_hex(Web3.keccak(text=signature)): LedgerEvent(name)
    for name, signature in EVENT_SIGNATURES.items()
}


def decode_log(log: Mapping[str, Any], auctions_by_address: Mapping[str, str]) -> tuple[str, LedgerEvent] | None:
    """Map a raw log to (auction id, event), or None when it is not ours."""
    topics = log.get("topics") or []
    if not topics:
        return None
    topic = topics[0]
    event = _TOPICS.get(topic.lower() if isinstance(topic, str) else Web3.to_hex(topic))
    auction_id = auctions_by_address.get(str(log.get("address", "")).lower())
    if event is None or auction_id is None:
        return None
    return auction_id, event


class LedgerEventWatcher:
    """Feeds contract events into a callback while a log subscription is available.

    A missing or broken event channel is never fatal: the periodic sweep keeps
    snapshots fresh, and the watcher retries the connection after a delay.
    """

    def __init__(
        self,
        ws_url: str | None,
        contracts: Mapping[str, str],
        on_event: EventCallback,
        *,
        reconnect_seconds: float = 30,
    ) -> None:
        self._ws_url = ws_url
        self._auctions_by_address = {address.lower(): auction_id for auction_id, address in contracts.items()}
        self._addresses = [Web3.to_checksum_address(address) for address in contracts.values()]
        self._on_event = on_event
        self._reconnect_seconds = reconnect_seconds

    async def run(self) -> None:
        if not self._ws_url:
            logger.info("no ledger event channel configured, relying on periodic sync")
            return
        while True:
            try:
                await self._listen()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning(
                    "ledger event channel unavailable, polling only for %.0fs: %s",
                    self._reconnect_seconds,
                    exc,
                )
            await asyncio.sleep(self._reconnect_seconds)

    async def _listen(self) -> None:
        async with AsyncWeb3(WebSocketProvider(self._ws_url)) as w3:
            await w3.eth.subscribe(
                "logs",
                {"address": self._addresses, "topics": [list(_TOPICS)]},
            )
            logger.info("subscribed to ledger events for %d contracts", len(self._addresses))
            async for message in w3.socket.process_subscriptions():
                decoded = decode_log(message.get("result") or {}, self._auctions_by_address)
                if decoded is None:
                    continue
                auction_id, event = decoded
                logger.debug("ledger event %s for auction %s", event.value, auction_id)
                await self._on_event(auction_id, event)
