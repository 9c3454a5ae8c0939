"""
Unit tests for lifecycle events and the event bus.
"""

import pytest
from pydantic import ValidationError

from aucengine.core.auction import AuctionCreated, AuctionEnded, EventBus, decode_event
from aucengine.core.auction.events import STORED_HISTORY_LIMIT
from aucengine.core.storage import StorageManager


@pytest.fixture
def created():
    return AuctionCreated(
        auction_id=0,
        seller="0x" + "11" * 20,
        item="fake item",
        starting_price=10**15,
        duration=60,
    )


@pytest.fixture
def ended():
    return AuctionEnded(auction_id=0, final_price=10**15 - 3, buyer="0x" + "22" * 20)


class TestEvents:
    """Tests for event models."""

    def test_events_are_frozen(self, created):
        with pytest.raises(ValidationError):
            created.item = "other"

    def test_json_roundtrip(self, created, ended):
        assert decode_event(created.name, created.model_dump_json()) == created
        assert decode_event(ended.name, ended.model_dump_json()) == ended

    def test_unknown_event_name(self):
        with pytest.raises(ValueError):
            decode_event("AuctionCancelled", "{}")

    def test_names(self, created, ended):
        assert created.name == "AuctionCreated"
        assert ended.name == "AuctionEnded"


class TestEventBus:
    """Tests for delivery and history."""

    def test_history(self, created, ended):
        bus = EventBus()
        bus.emit(created)
        bus.emit(ended)
        assert bus.history == [created, ended]

    def test_subscribers_receive_events(self, created):
        bus = EventBus()
        received = []
        bus.subscribe(received.append)

        bus.emit(created)
        assert received == [created]

    def test_unsubscribe(self, created):
        bus = EventBus()
        received = []
        bus.subscribe(received.append)
        bus.unsubscribe(received.append)

        bus.emit(created)
        assert received == []

    def test_failing_subscriber_does_not_block_others(self, created):
        bus = EventBus()
        received = []

        def broken(event):
            raise RuntimeError("observer crashed")

        bus.subscribe(broken)
        bus.subscribe(received.append)

        bus.emit(created)
        assert received == [created]
        assert bus.history == [created]

    def test_stored_events_without_storage(self, created, ended):
        bus = EventBus()
        bus.emit(created)
        bus.emit(ended)
        other = AuctionEnded(auction_id=1, final_price=5, buyer="0x" + "33" * 20)
        bus.emit(other)

        assert bus.stored_events(auction_id=1) == [other]
        assert len(bus.stored_events()) == 3

    def test_history_limit(self):
        bus = EventBus(history_limit=2)
        events = [AuctionEnded(auction_id=i, final_price=i, buyer="0x" + "44" * 20) for i in range(5)]
        for event in events:
            bus.emit(event)

        assert bus.history == events[-2:]
        assert bus.stored_events() == events[-2:]

    def test_history_bounded_with_storage(self, tmp_path):
        """The events table keeps everything; memory keeps only the tail."""
        storage = StorageManager(data_dir=tmp_path)
        bus = EventBus(storage_manager=storage)
        for i in range(STORED_HISTORY_LIMIT + 10):
            bus.emit(AuctionEnded(auction_id=i, final_price=i, buyer="0x" + "44" * 20))

        assert len(bus.history) == STORED_HISTORY_LIMIT
        assert bus.history[0].auction_id == 10
        assert len(bus.stored_events()) == STORED_HISTORY_LIMIT + 10
        storage.close()
