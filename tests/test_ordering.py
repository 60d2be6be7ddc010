"""Tests for debounced shopping list reordering."""

import asyncio
import time

import pytest

from grocery_reconciler.data_store import PersistenceError
from grocery_reconciler.models import ShoppingListEntry
from grocery_reconciler.ordering import AsyncioScheduler, OrderingBuffer, TimerScheduler
from grocery_reconciler.shopping_list import ItemNotFoundError, ShoppingListEngine


@pytest.fixture
def five_items(shopping_list):
    for item_id in ("a", "b", "c", "d", "e"):
        shopping_list.add_or_merge(ShoppingListEntry(id=item_id, name=item_id.upper()))
    return shopping_list


@pytest.fixture
def buffer(five_items, scheduler, data_store):
    buffer = OrderingBuffer(five_items, scheduler, debounce_seconds=1.0)
    data_store.reset()
    return buffer


def view_ids(buffer):
    return [e.id for e in buffer.view]


class TestMoves:
    """Tests for local reordering."""

    def test_move_up_swaps_neighbours(self, buffer):
        assert buffer.move_up("c") is True
        assert view_ids(buffer) == ["a", "c", "b", "d", "e"]

    def test_move_down(self, buffer):
        assert buffer.move_down("a") is True
        assert view_ids(buffer) == ["b", "a", "c", "d", "e"]

    def test_edges_are_noops(self, buffer, scheduler):
        assert buffer.move_up("a") is False
        assert buffer.move_down("e") is False
        assert view_ids(buffer) == ["a", "b", "c", "d", "e"]
        assert scheduler.tasks == []

    def test_unknown_id(self, buffer):
        with pytest.raises(ItemNotFoundError):
            buffer.move_up("zzz")

    def test_view_updates_before_write(self, buffer, five_items):
        buffer.move_up("c")
        assert buffer.pending is True
        assert five_items.ids() == ["a", "b", "c", "d", "e"]


class TestDebouncedWrite:
    """Tests for the single settled write."""

    def test_index_two_to_one_keeps_others(self, buffer, scheduler, five_items):
        buffer.move_up("c")
        scheduler.fire()

        ids = five_items.ids()
        assert ids[1] == "c"
        assert (ids[0], ids[3], ids[4]) == ("a", "d", "e")

    def test_three_moves_one_write(self, buffer, scheduler, data_store, five_items):
        buffer.move_up("c")
        buffer.move_down("c")
        buffer.move_up("c")

        assert len(scheduler.pending) == 1
        scheduler.fire()

        assert data_store.calls[("write_collection", "shopping_list")] == 1
        assert five_items.ids() == ["a", "c", "b", "d", "e"]
        assert buffer.pending is False

    def test_written_order_survives_reload(self, buffer, scheduler, data_store, five_items):
        buffer.move_down("a")
        scheduler.fire()
        reloaded = ShoppingListEngine(data_store, five_items.inventory)
        assert reloaded.ids() == ["b", "a", "c", "d", "e"]

    def test_checked_and_meals_follow(self, five_items, scheduler, catalog):
        five_items.mark_purchased("b")
        five_items.add_composite(catalog.get_item("sauce"), 1, [])
        buffer = OrderingBuffer(five_items, scheduler)

        buffer.move_up("d")
        scheduler.fire()

        assert five_items.ids() == ["a", "d", "c", "e", "b", "sauce"]

    def test_flush_writes_now(self, buffer, scheduler, five_items):
        buffer.move_up("b")
        assert buffer.flush() is True
        assert five_items.ids()[0] == "b"
        assert scheduler.pending == []
        assert buffer.flush() is False

    def test_close_drops_pending(self, buffer, scheduler, data_store):
        buffer.move_up("b")
        buffer.close()
        assert buffer.pending is False
        assert scheduler.pending == []
        assert data_store.calls[("write_collection", "shopping_list")] == 0

    def test_refresh_keeps_pending_order(self, buffer, five_items):
        buffer.move_up("b")
        five_items.add_or_merge(ShoppingListEntry(id="f", name="F"))
        buffer.refresh()
        assert view_ids(buffer) == ["b", "a", "c", "d", "e", "f"]

    def test_failed_write_propagates(self, buffer, data_store, five_items):
        buffer.move_up("b")
        data_store.fail_on.add(("write_collection", "shopping_list"))
        with pytest.raises(PersistenceError):
            buffer.flush()
        assert view_ids(buffer)[0] == "b"
        assert five_items.ids()[0] == "a"

    def test_flush_retries_after_failed_write(self, buffer, data_store, five_items):
        buffer.move_up("b")
        data_store.fail_on.add(("write_collection", "shopping_list"))
        with pytest.raises(PersistenceError):
            buffer.flush()

        data_store.fail_on.clear()
        assert buffer.flush() is True
        assert five_items.ids()[:2] == ["b", "a"]


class TestAsyncioScheduler:
    def test_debounces_on_event_loop(self, five_items, data_store):
        async def scenario():
            buffer = OrderingBuffer(five_items, AsyncioScheduler(), debounce_seconds=0.01)
            data_store.reset()
            buffer.move_up("c")
            buffer.move_up("c")
            await asyncio.sleep(0.05)
            return buffer

        buffer = asyncio.run(scenario())

        assert buffer.pending is False
        assert five_items.ids() == ["c", "a", "b", "d", "e"]
        assert data_store.calls[("write_collection", "shopping_list")] == 1


class TestTimerScheduler:
    def test_timer_write_waits_for_list_edits(self, five_items, data_store):
        buffer = OrderingBuffer(five_items, TimerScheduler(), debounce_seconds=0.01)
        data_store.reset()

        with five_items.lock:
            buffer.move_up("c")
            time.sleep(0.1)
            # The timer has fired but cannot write while the list is being edited
            assert data_store.calls[("write_collection", "shopping_list")] == 0
            five_items.add_or_merge(ShoppingListEntry(id="f", name="F"))

        deadline = time.monotonic() + 5
        while data_store.calls[("write_collection", "shopping_list")] == 0:
            assert time.monotonic() < deadline
            time.sleep(0.01)

        with five_items.lock:
            assert five_items.ids() == ["a", "c", "b", "d", "e", "f"]
        reloaded = ShoppingListEngine(data_store, five_items.inventory)
        assert reloaded.ids() == ["a", "c", "b", "d", "e", "f"]


class TestChangesWhilePending:
    def test_entry_checked_during_window_moves_to_checked(self, buffer, scheduler, five_items):
        buffer.move_up("c")
        five_items.mark_purchased("c")
        five_items.add_or_merge(ShoppingListEntry(id="f", name="F"))
        scheduler.fire()
        assert five_items.ids() == ["a", "b", "d", "e", "f", "c"]

    def test_view_follows_list_during_window(self, buffer, five_items):
        buffer.move_up("c")
        five_items.mark_purchased("a")
        five_items.add_or_merge(ShoppingListEntry(id="f", name="F"))

        assert view_ids(buffer) == ["c", "b", "d", "e", "f"]
        assert buffer.pending is True

    def test_cannot_move_entry_checked_during_window(self, buffer, five_items):
        buffer.move_up("c")
        five_items.mark_purchased("c")
        with pytest.raises(ItemNotFoundError):
            buffer.move_up("c")
