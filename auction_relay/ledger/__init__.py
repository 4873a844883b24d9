"""Ledger reader protocol and factory."""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from web3 import AsyncHTTPProvider, AsyncWeb3

from ..config import AuctionConfig, LedgerConfig
from .reader import LedgerReadError, Web3LedgerReader


class LedgerReader(Protocol):
    async def auction_end_time(self) -> int: ...

    async def highest_bid(self) -> Decimal: ...

    async def highest_bidder(self) -> str: ...

    async def bid_of(self, address: str) -> Decimal: ...

    async def bidder_at(self, index: int) -> str: ...

    async def bidders_count(self) -> int: ...


def build_readers(ledger: LedgerConfig, auctions: tuple[AuctionConfig, ...]) -> dict[str, LedgerReader]:
    if not ledger.rpc_url:
        raise ValueError("ledger rpc_url missing")
    w3 = AsyncWeb3(AsyncHTTPProvider(ledger.rpc_url))
    return {
        auction.auction_id: Web3LedgerReader(
            w3,
            auction.contract_address,
            timeout_seconds=ledger.read_timeout_seconds,
        )
        for auction in auctions
    }


__all__ = ["LedgerReadError", "LedgerReader", "Web3LedgerReader", "build_readers"]
