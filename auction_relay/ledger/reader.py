"""Read-only façade over one auction contract."""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Any

from web3 import AsyncWeb3, Web3

from ..auction.models import NO_BIDDER
from .abi import AUCTION_ABI

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class LedgerReadError(ValueError):
    """Raised when a ledger query fails or times out."""


def from_wei(value: int) -> Decimal:
    return Decimal(Web3.from_wei(value, "ether"))


class Web3LedgerReader:
    def __init__(self, w3: AsyncWeb3, contract_address: str, *, timeout_seconds: float = 10) -> None:
        self.address = Web3.to_checksum_address(contract_address)
        self._contract = w3.eth.contract(address=self.address, abi=AUCTION_ABI)
        self._timeout = timeout_seconds

    async def _call(self, function: str, *args: Any) -> Any:
        try:
            call = getattr(self._contract.functions, function)(*args).call()
            return await asyncio.wait_for(call, self._timeout)
        except Exception as exc:
            # Provider transport errors (HTTP status, dropped sockets) are read failures too.
            raise LedgerReadError(f"{function} failed: {exc}") from exc

    async def auction_end_time(self) -> int:
        return int(await self._call("auctionEndTime"))

    async def highest_bid(self) -> Decimal:
        return from_wei(await self._call("highestBid"))

    async def highest_bidder(self) -> str:
        address = await self._call("highestBidder")
        if not address or address == ZERO_ADDRESS:
            return NO_BIDDER
        return address

    async def bid_of(self, address: str) -> Decimal:
        return from_wei(await self._call("bids", Web3.to_checksum_address(address)))

    async def bidder_at(self, index: int) -> str:
        return await self._call("bidders", index)

    async def bidders_count(self) -> int:
        return int(await self._call("biddersCount"))
