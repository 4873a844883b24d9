"""Signs and submits bid/withdraw transactions for one bidder account."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from web3 import AsyncWeb3, Web3

from .abi import AUCTION_ABI

logger = logging.getLogger(__name__)


class WriteRejected(ValueError):
    """Raised when a ledger write fails or is reverted."""


class Web3LedgerWriter:
    def __init__(
        self,
        w3: AsyncWeb3,
        contract_address: str,
        private_key: str,
        *,
        receipt_timeout_seconds: float = 120,
    ) -> None:
        self._w3 = w3
        self._account = w3.eth.account.from_key(private_key)
        self._contract = w3.eth.contract(address=Web3.to_checksum_address(contract_address), abi=AUCTION_ABI)
        self._receipt_timeout = receipt_timeout_seconds

    @property
    def address(self) -> str:
        return self._account.address

    async def bid(self, value: Decimal) -> str:
        """Send ``value`` ether to the contract; the ledger accumulates the total."""
        return await self._submit("bid", value=Web3.to_wei(value, "ether"))

    async def withdraw(self) -> str:
        return await self._submit("withdraw")

    async def _submit(self, function: str, *, value: int = 0) -> str:
        try:
            nonce = await self._w3.eth.get_transaction_count(self.address)
            params: dict[str, Any] = {"from": self.address, "nonce": nonce, "value": value}
            tx = await getattr(self._contract.functions, function)().build_transaction(params)
            signed = self._account.sign_transaction(tx)
            tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
            receipt = await self._w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self._receipt_timeout)
        except Exception as exc:
            raise WriteRejected(f"{function} failed: {exc}") from exc
        tx_hex = Web3.to_hex(tx_hash)
        if receipt.get("status") != 1:
            raise WriteRejected(f"{function} reverted in {tx_hex}")
        logger.info("%s confirmed in %s", function, tx_hex)
        return tx_hex
