"""HTTP client for the relay's query and notification endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import httpx


class RelayApiError(ValueError):
    """Raised when the relay answers with an error or cannot be reached."""


@dataclass(frozen=True)
class AuctionDetails:
    auction_id: str
    contract_address: str
    min_bid: Decimal
    highest_bid: Decimal
    auction_end_time: int
    ended: bool


class RelayApiClient:
    def __init__(self, base_url: str, *, timeout_seconds: float = 10, client: httpx.AsyncClient | None = None) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout_seconds)

    async def close(self) -> None:
        await self._client.aclose()

    async def auction_details(self, auction_id: str) -> AuctionDetails:
        data = await self._request("GET", "/api/auction-details", params={"id": auction_id})
        return AuctionDetails(
            auction_id=str(data["auctionId"]),
            contract_address=data["contractAddress"],
            min_bid=Decimal(str(data["minBid"])),
            highest_bid=Decimal(str(data["highestBid"])),
            auction_end_time=int(data["auctionEndTime"]),
            ended=bool(data["ended"]),
        )

    async def notify_withdrawn(self, auction_id: str, wallet_address: str) -> None:
        await self._request(
            "POST",
            "/api/withdrawn",
            json={"walletAddress": wallet_address, "auctionId": auction_id},
        )

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise RelayApiError(f"{method} {url} failed: {exc}") from exc
        if not data.get("ok"):
            raise RelayApiError(f"{method} {url} returned not ok")
        return data
