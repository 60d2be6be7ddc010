"""Locally buffered reordering of the shopping list with debounced write-back."""

import asyncio
import logging
import threading
from collections.abc import Callable
from typing import Any, Protocol

from .models import ShoppingListEntry
from .shopping_list import ItemNotFoundError, ShoppingListEngine

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 1.0


class Scheduler(Protocol):
    """Runs a task after a delay and lets the caller cancel it."""

    def schedule(self, task: Callable[[], None], delay: float) -> Any: ...
    def cancel(self, handle: Any) -> None: ...


class TimerScheduler:
    """Scheduler backed by ``threading.Timer``; tasks run on a timer thread."""

    def schedule(self, task: Callable[[], None], delay: float) -> threading.Timer:
        timer = threading.Timer(delay, task)
        timer.daemon = True
        timer.start()
        return timer

    def cancel(self, handle: threading.Timer) -> None:
        handle.cancel()


class AsyncioScheduler:
    """Scheduler backed by the event loop's ``call_later``."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def schedule(self, task: Callable[[], None], delay: float) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, task)

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()


class OrderingBuffer:
    """In-memory order of the unchecked entries, persisted once it settles.

    Each move updates the local view immediately and restarts the debounce
    window; only the final order is written. The view is optimistic: a failed
    write leaves the local order in place and is reported to the caller.

    Moves and the write hold the shopping list's lock, so a task fired on a
    timer thread is serialized with edits made by the caller.
    """

    def __init__(
        self,
        shopping_list: ShoppingListEngine,
        scheduler: Scheduler | None = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        self.shopping_list = shopping_list
        self.scheduler = scheduler or TimerScheduler()
        self.debounce_seconds = debounce_seconds
        self._view: list[ShoppingListEntry] = []
        self._pending: Any = None
        # Local order differs from the stored one until a write succeeds
        self._dirty = False
        self.refresh()

    @property
    def view(self) -> list[ShoppingListEntry]:
        """Current local order of the entries that are unchecked right now."""
        self.refresh()
        return list(self._view)

    @property
    def pending(self) -> bool:
        """Whether a write is waiting for the debounce window to elapse."""
        return self._pending is not None

    def refresh(self) -> None:
        """Re-sync the local view from the shopping list.

        An unsaved reorder keeps its local order for entries that are still
        unchecked; entries that left the section are dropped and new ones
        are appended.
        """
        with self.shopping_list.lock:
            live = self.shopping_list.sections().unchecked
            if not self._dirty:
                self._view = list(live)
                return

            by_id = {e.id: e for e in live}
            kept = [by_id.pop(e.id) for e in self._view if e.id in by_id]
            self._view = [*kept, *by_id.values()]

    def index_of(self, item_id: str) -> int:
        for i, entry in enumerate(self._view):
            if entry.id == item_id:
                return i
        raise ItemNotFoundError(item_id)

    def move_up(self, item_id: str) -> bool:
        """Swap an entry with the one above it. No-op at the top.

        Returns:
            True if the order changed
        """
        with self.shopping_list.lock:
            self.refresh()
            index = self.index_of(item_id)
            if index == 0:
                return False
            self._swap(index - 1, index)
            return True

    def move_down(self, item_id: str) -> bool:
        """Swap an entry with the one below it. No-op at the bottom.

        Returns:
            True if the order changed
        """
        with self.shopping_list.lock:
            self.refresh()
            index = self.index_of(item_id)
            if index == len(self._view) - 1:
                return False
            self._swap(index, index + 1)
            return True

    def flush(self) -> bool:
        """Write a pending order now instead of waiting for the window.

        A local order left unsaved by a failed write is retried.

        Returns:
            True if a write was issued
        """
        with self.shopping_list.lock:
            if not self._dirty:
                return False
            if self._pending is not None:
                self.scheduler.cancel(self._pending)
            self._persist()
            return True

    def close(self) -> None:
        """Drop any pending write and the unsaved local order."""
        with self.shopping_list.lock:
            if self._pending is not None:
                self.scheduler.cancel(self._pending)
                self._pending = None
            self._dirty = False
            self.refresh()

    def _swap(self, first: int, second: int) -> None:
        self._view[first], self._view[second] = self._view[second], self._view[first]
        self._dirty = True
        if self._pending is not None:
            self.scheduler.cancel(self._pending)
        self._pending = self.scheduler.schedule(self._on_timer, self.debounce_seconds)

    def _on_timer(self) -> None:
        with self.shopping_list.lock:
            # Flushed or closed while this task waited for the lock
            if self._pending is None:
                return
            self._persist()

    def _persist(self) -> None:
        self.refresh()
        self._pending = None
        sections = self.shopping_list.sections()
        ordered_ids = [
            *(e.id for e in self._view),
            *(e.id for e in sections.checked),
            *(e.id for e in sections.composite),
        ]
        try:
            self.shopping_list.apply_order(ordered_ids)
        except Exception:
            logger.exception("Failed to save shopping list order")
            raise
        self._dirty = False
        logger.debug("Saved shopping list order (%d unchecked)", len(self._view))
