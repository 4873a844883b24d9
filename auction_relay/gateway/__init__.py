"""Bidder-side helpers for submitting bids against an auction contract."""

from .api import AuctionDetails, RelayApiClient, RelayApiError
from .bidding import BidRejected, BidSubmissionGateway, LedgerWriter, WriteRejected

__all__ = [
    "AuctionDetails",
    "BidRejected",
    "BidSubmissionGateway",
    "LedgerWriter",
    "RelayApiClient",
    "RelayApiError",
    "WriteRejected",
]
