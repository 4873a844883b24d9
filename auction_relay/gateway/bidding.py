"""Client-side bid validation, submission, and optimistic reconciliation."""

from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import Any, Protocol

from jsonschema import ValidationError

from ..ledger import LedgerReader, LedgerReadError
from ..ledger.writer import WriteRejected
from ..realtime.wire import decode_frame
from ..validation.validator import SchemaRegistry, get_schema_registry
from .api import RelayApiClient, RelayApiError

logger = logging.getLogger(__name__)


class BidRejected(ValueError):
    """Raised when a bid fails local validation; no ledger write was attempted."""


class LedgerWriter(Protocol):
    @property
    def address(self) -> str: ...

    async def bid(self, value: Decimal) -> str: ...

    async def withdraw(self) -> str: ...


class BidSubmissionGateway:
    """Tracks one bidder's view of one auction.

    Local state is optimistic: after an acknowledged write it reflects what the
    bidder just did, and the next server push overwrites it unconditionally.
    """

    def __init__(
        self,
        auction_id: str,
        writer: LedgerWriter,
        api: RelayApiClient,
        *,
        reader: LedgerReader | None = None,
        schemas: SchemaRegistry | None = None,
    ) -> None:
        self.auction_id = auction_id
        self._writer = writer
        self._api = api
        self._reader = reader
        self._schemas = schemas or get_schema_registry()

        self.contract_address: str | None = None
        self.min_bid = Decimal("0.0001")
        self.highest_bid = Decimal(0)
        self.has_any_bidder = False
        self.current_user_bid = Decimal(0)
        self.ended = False
        self.seconds_left: int | None = None
        self.bid_history: list[dict[str, Any]] = []
        self.pending = False

    @property
    def is_leading(self) -> bool:
        return self.current_user_bid > 0 and self.current_user_bid >= self.highest_bid

    async def load(self) -> None:
        details = await self._api.auction_details(self.auction_id)
        self.contract_address = details.contract_address
        self.min_bid = details.min_bid
        self.highest_bid = details.highest_bid
        self.has_any_bidder = details.highest_bid > 0
        self.ended = details.ended
        self.seconds_left = max(0, details.auction_end_time - int(time.time()))
        await self.refresh_own_total()

    def check_bid(self, value: Decimal) -> Decimal:
        """Return the new cumulative total, or raise ``BidRejected``.

        A total equal to the current highest bid is rejected, matching the
        contract, which only accepts strict improvements.
        """
        if value <= 0:
            raise BidRejected("bid amount must be positive")
        if self.ended:
            raise BidRejected("auction has ended")
        new_total = self.current_user_bid + value
        if not self.has_any_bidder and new_total < self.min_bid:
            raise BidRejected(f"total bid must be at least {self.min_bid}")
        if self.has_any_bidder and new_total <= self.highest_bid:
            raise BidRejected(f"total bid must be higher than {self.highest_bid}")
        return new_total

    async def place_bid(self, value: Decimal) -> str:
        new_total = self.check_bid(value)
        self.pending = True
        try:
            # The ledger accumulates per-address totals, so only the increment is sent.
            tx_hash = await self._writer.bid(value)
        finally:
            self.pending = False
        self.current_user_bid = new_total
        if new_total > self.highest_bid:
            self.highest_bid = new_total
            self.has_any_bidder = True
        await self.refresh_own_total()
        return tx_hash

    async def withdraw(self) -> str:
        self.pending = True
        try:
            tx_hash = await self._writer.withdraw()
        finally:
            self.pending = False
        self.current_user_bid = Decimal(0)
        try:
            await self._api.notify_withdrawn(self.auction_id, self._writer.address)
        except RelayApiError as exc:
            logger.warning("withdraw notification failed: %s", exc)
        return tx_hash

    async def refresh_own_total(self) -> None:
        if self._reader is None:
            return
        try:
            self.current_user_bid = await self._reader.bid_of(self._writer.address)
        except LedgerReadError as exc:
            logger.warning("could not refresh own bid total: %s", exc)

    def apply_event(self, frame: Any) -> bool:
        """Apply a pushed frame, raw or decoded; returns False when it was invalid or for another auction."""
        if isinstance(frame, (str, bytes)):
            try:
                frame = decode_frame(frame)
            except ValueError as exc:
                logger.warning("ignoring undecodable push: %s", exc)
                return False
        try:
            event, data = self._schemas.validate_event(frame)
        except ValidationError as exc:
            logger.warning("ignoring malformed push: %s", exc.message)
            return False
        if event == "highestBidUpdate":
            if data["auctionId"] != self.auction_id:
                return False
            self.highest_bid = Decimal(str(data["amount"]))
            self.has_any_bidder = self.highest_bid > 0
        elif event == "timerUpdate":
            if data["id"] != self.auction_id:
                return False
            self.seconds_left = data["seconds"]
            self.ended = self.ended or data["ended"] or data["seconds"] <= 0
        elif event == "bidHistoryUpdate":
            self.bid_history = sorted(data, key=lambda entry: entry["amount"], reverse=True)
        else:
            return False
        return True


__all__ = ["BidRejected", "BidSubmissionGateway", "LedgerWriter", "WriteRejected"]
