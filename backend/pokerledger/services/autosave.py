"""Debounced persistence of local session changes.

Mutations mark the session dirty and (re)start a short timer; the snapshot
is written once the timer fires without further changes. A crash inside the
window loses the unsaved changes. Writes never overlap: a flush waits for a
save that is already on its way to the store.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional

from pokerledger.errors import PersistenceFailure

logger = logging.getLogger("pokerledger.services.autosave")

SaveFn = Callable[[], Awaitable[None]]


class AutoSaver:
    """Runs ``save_fn`` after ``delay`` seconds of quiet."""

    def __init__(self, save_fn: SaveFn, delay: float = 1.0, name: str = "session") -> None:
        self._save_fn = save_fn
        self._delay = delay
        self._name = name
        self._timer: Optional[asyncio.Task] = None
        self._write_lock = asyncio.Lock()
        self._dirty = False
        self._in_flight = False
        self.last_error: Optional[PersistenceFailure] = None

    @property
    def pending(self) -> bool:
        """True while changes are unsaved or a save is still being written."""
        return self._dirty or self._in_flight

    def schedule(self) -> None:
        """Mark dirty and restart the debounce timer."""
        self._dirty = True
        self._cancel_timer()
        self._timer = asyncio.create_task(self._delayed_save())

    async def flush(self) -> bool:
        """Save now if anything is pending. Returns False if the save failed."""
        self._cancel_timer()
        async with self._write_lock:
            if not self._dirty:
                return True
            return await self._save()

    def cancel(self) -> None:
        """Drop pending work without saving."""
        self._cancel_timer()
        self._dirty = False

    def _cancel_timer(self) -> None:
        # Only a timer that is still sleeping is cancelled; writes run to completion.
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _delayed_save(self) -> None:
        try:
            await asyncio.sleep(self._delay)
        except asyncio.CancelledError:
            return
        if self._timer is asyncio.current_task():
            self._timer = None
        async with self._write_lock:
            if self._dirty:
                await self._save()

    async def _save(self) -> bool:
        # Cleared before the await so changes made during the write re-mark it.
        self._dirty = False
        self._in_flight = True
        try:
            await self._save_fn()
        except Exception as e:
            self._dirty = True
            self.last_error = PersistenceFailure(f"Failed to save {self._name}: {e}")
            logger.error("%s", self.last_error)
            return False
        finally:
            self._in_flight = False
        self.last_error = None
        return True
