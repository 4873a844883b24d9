"""Bid history ranking helpers."""

from __future__ import annotations

from decimal import Decimal
from typing import Callable, Iterable, MutableMapping

from .models import NO_BIDDER, BidEntry


def rank_entries(entries: Iterable[BidEntry]) -> tuple[BidEntry, ...]:
    # sorted() is stable, so equal amounts keep insertion order.
    return tuple(sorted(entries, key=lambda entry: entry.amount, reverse=True))


def merge_highest_bidder(
    entries: MutableMapping[str, BidEntry],
    highest_bidder: str,
    highest_bid: Decimal,
    make_entry: Callable[[str, Decimal], BidEntry],
) -> None:
    """Make sure the ledger's highest bidder appears with at least the highest bid.

    The ledger's highest bidder/amount fields can update before the per-bidder
    enumeration catches up; without this step the leader may be missing from
    the history or listed with a stale total.
    """
    if highest_bidder == NO_BIDDER or highest_bid <= 0:
        return
    key = highest_bidder.lower()
    existing = entries.get(key)
    if existing is None or existing.amount < highest_bid:
        entries[key] = make_entry(highest_bidder, highest_bid)
