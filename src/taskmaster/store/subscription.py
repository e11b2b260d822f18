# src/taskmaster/store/subscription.py

from __future__ import annotations

"""
Queue-backed snapshot channel.

The store pushes full snapshots synchronously from the thread that performed
the write; consumers read them with `async for`. Everything runs on a single
event loop thread, so no locking is done here.
"""

import asyncio
import logging
from collections.abc import Callable

from ..core.ports import Snapshot

logger = logging.getLogger(__name__)

# Pushed into the queue by close() to wake a pending reader.
_CLOSED = None


class QueueSubscription:
    def __init__(
        self,
        collection: str,
        owner_id: str,
        *,
        on_close: Callable[[QueueSubscription], None] | None = None,
    ) -> None:
        self.collection = collection
        self.owner_id = owner_id
        self._queue: asyncio.Queue[Snapshot | None] = asyncio.Queue()
        self._on_close = on_close
        self._closed = False

    def __repr__(self) -> str:
        return (
            f"QueueSubscription(collection={self.collection!r}, owner_id={self.owner_id!r}, "
            f"closed={self._closed})"
        )

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, snapshot: Snapshot) -> None:
        if self._closed:
            return
        self._queue.put_nowait(snapshot)

    def pending(self) -> int:
        return self._queue.qsize()

    def drain(self) -> list[Snapshot]:
        """Take every queued snapshot without waiting (sync consumers)."""
        out: list[Snapshot] = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is not _CLOSED:
                out.append(item)
        return out

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        if self._on_close is not None:
            try:
                self._on_close(self)
            except Exception:
                logger.exception("Subscription close hook failed %r", self)
        logger.debug("Subscription closed %r", self)

    def __aiter__(self) -> QueueSubscription:
        return self

    async def __anext__(self) -> Snapshot:
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED or self._closed:
            raise StopAsyncIteration
        return item
