"""Unit tests for client-side bid validation and reconciliation."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from auction_relay.gateway import (
    AuctionDetails,
    BidRejected,
    BidSubmissionGateway,
    RelayApiClient,
    RelayApiError,
    WriteRejected,
)

from .fakes import ALICE, FakeLedgerReader


@pytest.fixture
def writer():
    writer = MagicMock()
    writer.address = ALICE
    writer.bid = AsyncMock(return_value="0xabc")
    writer.withdraw = AsyncMock(return_value="0xdef")
    return writer


@pytest.fixture
def api():
    api = AsyncMock(spec=RelayApiClient)
    return api


@pytest.fixture
def gateway(writer, api):
    return BidSubmissionGateway("101", writer, api)


def d(value: str) -> Decimal:
    return Decimal(value)


class TestLocalValidation:
    def test_first_bid_must_reach_minimum(self, gateway):
        gateway.min_bid = d("0.0001")

        with pytest.raises(BidRejected):
            gateway.check_bid(d("0.00005"))
        assert gateway.check_bid(d("0.0001")) == d("0.0001")

    def test_total_must_beat_highest_bid(self, gateway):
        gateway.has_any_bidder = True
        gateway.highest_bid = d("1.0")
        gateway.current_user_bid = d("0.5")

        with pytest.raises(BidRejected):
            gateway.check_bid(d("0.4"))
        with pytest.raises(BidRejected):
            gateway.check_bid(d("0.5"))
        assert gateway.check_bid(d("0.50001")) == d("1.00001")

    @pytest.mark.parametrize("value", ["0", "-1"])
    def test_non_positive_increment_rejected(self, gateway, value):
        with pytest.raises(BidRejected):
            gateway.check_bid(d(value))

    def test_ended_auction_rejects_bids(self, gateway):
        gateway.ended = True
        with pytest.raises(BidRejected, match="ended"):
            gateway.check_bid(d("1"))

    @pytest.mark.asyncio
    async def test_rejected_bid_never_reaches_ledger(self, gateway, writer):
        gateway.has_any_bidder = True
        gateway.highest_bid = d("1.0")

        with pytest.raises(BidRejected):
            await gateway.place_bid(d("0.5"))
        writer.bid.assert_not_called()


class TestSubmission:
    @pytest.mark.asyncio
    async def test_sends_increment_and_takes_provisional_lead(self, gateway, writer):
        gateway.has_any_bidder = True
        gateway.highest_bid = d("1.0")
        gateway.current_user_bid = d("0.5")

        tx_hash = await gateway.place_bid(d("0.6"))

        assert tx_hash == "0xabc"
        writer.bid.assert_awaited_once_with(d("0.6"))
        assert gateway.current_user_bid == d("1.1")
        assert gateway.highest_bid == d("1.1")
        assert gateway.is_leading
        assert gateway.pending is False

    @pytest.mark.asyncio
    async def test_write_failure_leaves_state_unchanged(self, gateway, writer):
        gateway.has_any_bidder = True
        gateway.highest_bid = d("1.0")
        gateway.current_user_bid = d("0.5")
        writer.bid.side_effect = WriteRejected("bid reverted")

        with pytest.raises(WriteRejected):
            await gateway.place_bid(d("0.6"))

        assert gateway.current_user_bid == d("0.5")
        assert gateway.highest_bid == d("1.0")
        assert gateway.pending is False

    @pytest.mark.asyncio
    async def test_refreshes_own_total_from_ledger(self, writer, api):
        reader = FakeLedgerReader(totals={ALICE: "0.3"})
        gateway = BidSubmissionGateway("101", writer, api, reader=reader)

        await gateway.place_bid(d("0.2"))

        assert gateway.current_user_bid == d("0.3")

    @pytest.mark.asyncio
    async def test_withdraw_resets_and_notifies(self, gateway, writer, api):
        gateway.current_user_bid = d("0.7")

        await gateway.withdraw()

        assert gateway.current_user_bid == 0
        api.notify_withdrawn.assert_awaited_once_with("101", ALICE)

    @pytest.mark.asyncio
    async def test_withdraw_survives_notification_failure(self, gateway, api):
        gateway.current_user_bid = d("0.7")
        api.notify_withdrawn.side_effect = RelayApiError("down")

        await gateway.withdraw()

        assert gateway.current_user_bid == 0

    @pytest.mark.asyncio
    async def test_failed_withdraw_keeps_bid(self, gateway, writer, api):
        gateway.current_user_bid = d("0.7")
        writer.withdraw.side_effect = WriteRejected("nothing to withdraw")

        with pytest.raises(WriteRejected):
            await gateway.withdraw()

        assert gateway.current_user_bid == d("0.7")
        api.notify_withdrawn.assert_not_called()

    @pytest.mark.asyncio
    async def test_load_seeds_state_from_relay(self, gateway, api):
        api.auction_details.return_value = AuctionDetails(
            auction_id="101",
            contract_address="0xF4800bcC6e0690F4c7524e4347e098F618a3ff3F",
            min_bid=d("0.0001"),
            highest_bid=d("0.2"),
            auction_end_time=0,
            ended=False,
        )

        await gateway.load()

        assert gateway.has_any_bidder is True
        assert gateway.highest_bid == d("0.2")
        assert gateway.seconds_left == 0

    @pytest.mark.asyncio
    async def test_load_picks_up_existing_ledger_total(self, writer, api):
        api.auction_details.return_value = AuctionDetails(
            auction_id="101",
            contract_address="0xF4800bcC6e0690F4c7524e4347e098F618a3ff3F",
            min_bid=d("0.0001"),
            highest_bid=d("1.0"),
            auction_end_time=0,
            ended=False,
        )
        reader = FakeLedgerReader(totals={ALICE: "0.5"})
        gateway = BidSubmissionGateway("101", writer, api, reader=reader)

        await gateway.load()

        assert gateway.current_user_bid == d("0.5")
        assert gateway.check_bid(d("0.6")) == d("1.1")


class TestPushes:
    def test_push_overrides_optimistic_state(self, gateway):
        gateway.highest_bid = d("1.1")
        gateway.current_user_bid = d("1.1")

        applied = gateway.apply_event(
            {"event": "highestBidUpdate", "data": {"auctionId": "101", "amount": 1.5, "bidderName": "bob"}}
        )

        assert applied
        assert gateway.highest_bid == d("1.5")
        assert not gateway.is_leading

    def test_other_auction_ignored(self, gateway):
        applied = gateway.apply_event(
            {"event": "highestBidUpdate", "data": {"auctionId": "102", "amount": 9, "bidderName": "x"}}
        )
        assert not applied
        assert gateway.highest_bid == 0

    def test_timer_marks_ended(self, gateway):
        gateway.apply_event({"event": "timerUpdate", "data": {"id": "101", "seconds": 0, "ended": True}})
        assert gateway.ended
        assert gateway.seconds_left == 0

    def test_malformed_push_ignored(self, gateway):
        assert not gateway.apply_event({"event": "timerUpdate", "data": {"id": "101", "seconds": -3}})
        assert not gateway.apply_event({"event": "mystery", "data": {}})
        assert gateway.seconds_left is None

    def test_raw_frame_is_decoded(self, gateway):
        raw = b'{"event": "timerUpdate", "data": {"id": "101", "seconds": 12, "ended": false}}'
        assert gateway.apply_event(raw)
        assert gateway.seconds_left == 12

    def test_undecodable_raw_frame_ignored(self, gateway):
        assert not gateway.apply_event("not json")
        assert not gateway.apply_event("[1, 2]")

    def test_history_replaces_leaderboard(self, gateway):
        entries = [
            {"bidderName": "a", "walletAddress": ALICE, "amount": 0.1, "ts": 1},
            {"bidderName": "b", "walletAddress": ALICE.lower(), "amount": 0.4, "ts": 2},
        ]
        gateway.apply_event({"event": "bidHistoryUpdate", "data": entries})
        assert [entry["amount"] for entry in gateway.bid_history] == [0.4, 0.1]


class TestRelayApiClient:
    @pytest.mark.asyncio
    async def test_auction_details_parsed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["id"] == "102"
            return httpx.Response(
                200,
                json={
                    "ok": True,
                    "auctionId": "102",
                    "contractAddress": "0x036b20234e5A20FB657fA698eB6c9853b40B2FaB",
                    "minBid": 0.0001,
                    "highestBid": 0.5,
                    "auctionEndTime": 1700000600,
                    "ended": False,
                },
            )

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://relay")
        api = RelayApiClient("http://relay", client=client)

        details = await api.auction_details("102")

        assert details.min_bid == d("0.0001")
        assert details.highest_bid == d("0.5")
        await api.close()

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(404, json={"detail": "x"})),
            base_url="http://relay",
        )
        api = RelayApiClient("http://relay", client=client)

        with pytest.raises(RelayApiError):
            await api.notify_withdrawn("999", ALICE)
        await api.close()
