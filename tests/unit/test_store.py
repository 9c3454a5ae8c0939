"""
Unit tests for the auction store.

Tests cover:
1. Sequential id assignment
2. Lookup and copy semantics
3. One-shot settlement
4. Per-id settlement locks
"""

import threading

import pytest

from aucengine.core.auction import AuctionNotFound, AuctionStore, InvalidState


SELLER = b"\x11" * 20
BUYER = b"\x22" * 20


@pytest.fixture
def store():
    return AuctionStore()


def add(store, item="fake item"):
    return store.append(
        seller=SELLER,
        item=item,
        starting_price=100_000,
        discount_rate=3,
        start_at=1_000,
        end_at=1_060,
    )


class TestAppend:
    """Tests for record creation."""

    def test_first_id_is_zero(self, store):
        assert add(store) == 0

    def test_ids_strictly_increase(self, store):
        assert [add(store) for _ in range(5)] == [0, 1, 2, 3, 4]
        assert store.count() == 5

    def test_new_record_is_active(self, store):
        auction = store.get(add(store))
        assert not auction.stopped
        assert auction.final_price == 0
        assert auction.buyer is None
        assert auction.duration == 60

    def test_concurrent_appends_get_unique_ids(self, store):
        ids = []
        lock = threading.Lock()

        def worker():
            for _ in range(50):
                new_id = add(store)
                with lock:
                    ids.append(new_id)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(ids) == list(range(200))


class TestGet:
    """Tests for lookups."""

    def test_unknown_id(self, store):
        with pytest.raises(AuctionNotFound):
            store.get(0)

    def test_negative_id(self, store):
        add(store)
        with pytest.raises(AuctionNotFound):
            store.get(-1)

    def test_non_integer_id(self, store):
        add(store)
        with pytest.raises(AuctionNotFound):
            store.get("0")

    def test_exists(self, store):
        auction_id = add(store)
        assert store.exists(auction_id)
        assert not store.exists(auction_id + 1)

    def test_get_returns_copy(self, store):
        auction_id = add(store)
        copy = store.get(auction_id)
        copy.item = "changed"
        assert store.get(auction_id).item == "fake item"


class TestSettlement:
    """Tests for prepare_settlement and commit_settlement."""

    def test_prepare_does_not_mutate(self, store):
        auction_id = add(store)
        settled = store.prepare_settlement(auction_id, 99_000, BUYER)

        assert settled.stopped
        assert settled.final_price == 99_000
        assert settled.buyer == BUYER
        assert not store.get(auction_id).stopped

    def test_commit(self, store):
        auction_id = add(store)
        store.commit_settlement(store.prepare_settlement(auction_id, 99_000, BUYER))

        auction = store.get(auction_id)
        assert auction.stopped
        assert auction.final_price == 99_000
        assert auction.buyer == BUYER

    def test_settle_twice_fails(self, store):
        auction_id = add(store)
        store.commit_settlement(store.prepare_settlement(auction_id, 99_000, BUYER))

        with pytest.raises(InvalidState):
            store.prepare_settlement(auction_id, 1, BUYER)
        assert store.get(auction_id).final_price == 99_000

    def test_stale_commit_fails(self, store):
        """Two settlements prepared from the same active record: only one lands."""
        auction_id = add(store)
        first = store.prepare_settlement(auction_id, 99_000, BUYER)
        second = store.prepare_settlement(auction_id, 1, BUYER)

        store.commit_settlement(first)
        with pytest.raises(InvalidState):
            store.commit_settlement(second)
        assert store.get(auction_id).final_price == 99_000

    def test_settlement_keeps_immutable_fields(self, store):
        auction_id = add(store)
        before = store.get(auction_id)
        store.commit_settlement(store.prepare_settlement(auction_id, 99_000, BUYER))
        after = store.get(auction_id)

        for field in ("auction_id", "seller", "item", "starting_price", "discount_rate", "start_at", "end_at"):
            assert getattr(after, field) == getattr(before, field)

    def test_list_excludes_stopped(self, store):
        first = add(store)
        second = add(store)
        store.commit_settlement(store.prepare_settlement(first, 1, BUYER))

        assert [a.auction_id for a in store.list_auctions(include_stopped=False)] == [second]
        assert store.stats() == {"auction_count": 2, "settled": 1, "active": 1}


class TestLocks:
    """Tests for per-id settlement locks."""

    def test_same_id_same_lock(self, store):
        auction_id = add(store)
        assert store.lock_for(auction_id) is store.lock_for(auction_id)

    def test_different_ids_different_locks(self, store):
        first = add(store)
        second = add(store)
        assert store.lock_for(first) is not store.lock_for(second)

    def test_lock_for_unknown_id(self, store):
        with pytest.raises(AuctionNotFound):
            store.lock_for(0)
