"""
Integration tests for restarting a SQLite-backed engine.
"""

import pytest

from aucengine.core.auction import (
    AuctionCreated,
    AuctionEngine,
    AuctionEnded,
    AuctionStopped,
    AuctionStore,
    SettlementFailed,
)
from aucengine.core.bootstrap import open_engine
from aucengine.core.clock import ManualClock
from aucengine.core.config import EngineConfig
from aucengine.core.ledger import Ledger
from aucengine.core.storage import StorageManager
from aucengine.crypto import generate_address


@pytest.fixture
def config(tmp_path):
    return EngineConfig(data_dir=tmp_path / "engine_data")


@pytest.fixture
def clock():
    return ManualClock(start=1_700_000_000)


def test_engine_state_survives_restart(config, clock):
    """Owner, auctions, settlement, balances and events are all reloaded."""
    seller, buyer = generate_address(), generate_address()

    # 1. First run: list two auctions and settle one
    engine_a = open_engine(config, clock=clock)
    engine_a.ledger.mint(buyer, 10**16)

    sold_id = engine_a.create_auction(seller, 10**15, 3, "fake item", 60)
    open_id = engine_a.create_auction(seller, 10**15, 3, "other item", 60)
    clock.advance(10)
    final_price, refund = engine_a.buy(sold_id, buyer, 3 * 10**15)

    owner = engine_a.owner
    balances = {
        address: engine_a.ledger.get_balance(address)
        for address in (owner, seller, buyer)
    }
    del engine_a

    # 2. Second run on the same directory
    engine_b = open_engine(config, clock=clock)

    assert engine_b.owner == owner
    assert engine_b.auction_count() == 2
    for address, balance in balances.items():
        assert engine_b.ledger.get_balance(address) == balance

    sold = engine_b.get_auction(sold_id)
    assert sold.stopped
    assert sold.final_price == final_price == 10**15 - 30
    assert sold.buyer == buyer
    with pytest.raises(AuctionStopped):
        engine_b.buy(sold_id, buyer, 3 * 10**15)

    assert engine_b.get_price_for(open_id) == 10**15 - 30
    assert engine_b.stats()["settlements"] == 1
    assert engine_b.stats()["total_fees"] == final_price // 10

    events = engine_b.events.stored_events()
    assert [type(e) for e in events] == [AuctionCreated, AuctionCreated, AuctionEnded]
    assert events[2].final_price == final_price

    # 3. New ids continue after the stored ones
    assert engine_b.create_auction(seller, 10**15, 3, "third item", 60) == 2


def test_failed_settlement_is_not_persisted(config, clock):
    """A rejected batch leaves the stored auction active."""
    seller, broke_buyer = generate_address(), generate_address()

    engine_a = open_engine(config, clock=clock)
    auction_id = engine_a.create_auction(seller, 10**15, 3, "fake item", 60)
    with pytest.raises(SettlementFailed):
        engine_a.buy(auction_id, broke_buyer, 10**15)
    del engine_a

    engine_b = open_engine(config, clock=clock)
    record = engine_b.get_auction(auction_id)
    assert not record.stopped
    assert record.buyer is None
    assert record.final_price == 0


def test_crash_during_settlement_write_leaves_auction_buyable(config, clock):
    """Dying inside the settlement write stores neither the stop nor the payment."""
    seller, buyer = generate_address(), generate_address()

    engine_a = open_engine(config, clock=clock)
    engine_a.ledger.mint(buyer, 10**16)
    auction_id = engine_a.create_auction(seller, 10**15, 3, "fake item", 60)

    def die(auction, balances):
        raise SystemExit(1)

    engine_a.store.storage_manager.persist_settlement_with_balances = die
    with pytest.raises(SystemExit):
        engine_a.buy(auction_id, buyer, 10**15)

    assert not engine_a.get_auction(auction_id).stopped
    assert engine_a.ledger.get_balance(buyer) == 10**16
    del engine_a

    engine_b = open_engine(config, clock=clock)
    record = engine_b.get_auction(auction_id)
    assert not record.stopped
    assert engine_b.ledger.get_balance(seller) == 0
    assert engine_b.ledger.get_balance(buyer) == 10**16

    final_price, _ = engine_b.buy(auction_id, buyer, 10**15)
    assert engine_b.get_auction(auction_id).stopped
    assert engine_b.ledger.get_balance(seller) == final_price - final_price // 10


def test_settlement_commits_stop_and_payment_together(config, clock):
    """One combined write carries the settled record and every moved balance."""
    seller, buyer = generate_address(), generate_address()

    engine = open_engine(config, clock=clock)
    engine.ledger.mint(buyer, 10**16)
    auction_id = engine.create_auction(seller, 10**15, 3, "fake item", 60)

    storage = engine.store.storage_manager
    writes = []
    original = storage.persist_settlement_with_balances

    def record_write(auction, balances):
        writes.append((auction, dict(balances)))
        original(auction, balances)

    storage.persist_settlement_with_balances = record_write
    final_price, refund = engine.buy(auction_id, buyer, 3 * 10**15)

    assert len(writes) == 1
    settled, balances = writes[0]
    assert settled.stopped and settled.final_price == final_price
    assert balances[buyer] == 10**16 - final_price
    assert balances[seller] == final_price - final_price // 10
    assert balances[engine.owner] == final_price // 10


def test_store_only_storage_persists_settlement(tmp_path, clock):
    """A persistent store with an in-memory ledger still writes the settlement."""
    storage = StorageManager(data_dir=tmp_path)
    ledger = Ledger()
    seller, buyer = generate_address(), generate_address()
    ledger.mint(buyer, 10**16)

    engine = AuctionEngine(
        owner=generate_address(),
        ledger=ledger,
        clock=clock,
        store=AuctionStore(storage_manager=storage),
    )
    auction_id = engine.create_auction(seller, 10**15, 3, "fake item", 60)
    final_price, _ = engine.buy(auction_id, buyer, 10**15)

    reloaded = AuctionStore(storage_manager=StorageManager(data_dir=tmp_path)).get(auction_id)
    assert reloaded.stopped
    assert reloaded.final_price == final_price
    assert reloaded.buyer == buyer
    assert storage.load_balances() == []
