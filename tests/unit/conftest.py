from __future__ import annotations

import pytest

from auction_relay.auction.store import AuctionStateStore
from auction_relay.auction.synchronizer import Synchronizer
from auction_relay.config import parse_server_config
from auction_relay.realtime.fanout import ConnectionRegistry

from .fakes import CONFIG_DATA, FakeLedgerReader, ManualClock


@pytest.fixture
def server_config():
    return parse_server_config(CONFIG_DATA)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def readers():
    return {"101": FakeLedgerReader(), "102": FakeLedgerReader()}


@pytest.fixture
def store(server_config):
    return AuctionStateStore(server_config.auctions)


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def synchronizer(store, readers, registry, clock):
    return Synchronizer(store, readers, registry, withdraw_resync_delay=0.01, clock=clock)
