"""ABI of the auction contract deployed per auction."""

from __future__ import annotations

from typing import Any


def _event(name: str, *inputs: tuple[str, str, bool]) -> dict[str, Any]:
    return {
        "anonymous": False,
        "name": name,
        "type": "event",
        "inputs": [
            {"indexed": indexed, "internalType": kind, "name": arg, "type": kind}
            for arg, kind, indexed in inputs
        ],
    }


def _view(name: str, inputs: list[str], output: str) -> dict[str, Any]:
    return {
        "name": name,
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"internalType": kind, "name": "", "type": kind} for kind in inputs],
        "outputs": [{"internalType": output, "name": "", "type": output}],
    }


AUCTION_ABI: list[dict[str, Any]] = [
    _event("BidPlaced", ("bidder", "address", True), ("amount", "uint256", False), ("total", "uint256", False)),
    _event("NewHighBid", ("bidder", "address", True), ("total", "uint256", False)),
    _event("Withdrawn", ("bidder", "address", True), ("amount", "uint256", False)),
    _event("AuctionEnded", ("winner", "address", False), ("amount", "uint256", False)),
    _view("auctionEndTime", [], "uint256"),
    _view("highestBid", [], "uint256"),
    _view("highestBidder", [], "address"),
    _view("bids", ["address"], "uint256"),
    _view("bidders", ["uint256"], "address"),
    _view("biddersCount", [], "uint256"),
    {"inputs": [], "name": "bid", "outputs": [], "stateMutability": "payable", "type": "function"},
    {"inputs": [], "name": "withdraw", "outputs": [], "stateMutability": "nonpayable", "type": "function"},
]

EVENT_SIGNATURES: dict[str, str] = {
    "BidPlaced": "BidPlaced(address,uint256,uint256)",
    "NewHighBid": "NewHighBid(address,uint256)",
    "Withdrawn": "Withdrawn(address,uint256)",
    "AuctionEnded": "AuctionEnded(address,uint256)",
}
