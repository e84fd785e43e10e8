"""FIFO save queue - at most one save in flight per draft session."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SaveQueue:
    """Chains save operations so they run one at a time, in submission order.

    Each link waits for the previous link to settle, successfully or not, so
    a failed save never blocks the ones queued behind it. The failure still
    propagates to the caller that submitted it.
    """

    def __init__(self) -> None:
        self._tail: asyncio.Future[None] | None = None
        self._pending = 0

    @property
    def pending(self) -> int:
        """Operations submitted and not yet settled (running or waiting)."""
        return self._pending

    @property
    def busy(self) -> bool:
        return self._pending > 0

    async def submit(self, operation: Callable[[], Awaitable[T]]) -> T:
        previous = self._tail
        link: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._tail = link
        self._pending += 1
        if previous is not None:
            try:
                await asyncio.shield(previous)
            except asyncio.CancelledError:
                # A cancelled waiter hands its turn on only when the save ahead settles.
                self._pending -= 1
                if self._tail is link:
                    self._tail = previous
                previous.add_done_callback(lambda _: link.set_result(None))
                raise
        try:
            return await operation()
        except Exception:
            logger.debug("Queued save failed; releasing the queue for the next save")
            raise
        finally:
            self._pending -= 1
            link.set_result(None)
            if self._tail is link:
                self._tail = None
