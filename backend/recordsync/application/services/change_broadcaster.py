"""Change broadcaster — in-process fan-out of watcher change events."""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator, Callable

from recordsync.domain.entities import ChangeSet

logger = logging.getLogger(__name__)

ChangeListener = Callable[[ChangeSet], None]


class ChangeEventBroadcaster:
    """Delivers each ChangeSet to every subscriber without waiting on them.

    Each subscriber gets its own bounded asyncio.Queue. ``publish`` only
    ever calls ``put_nowait``, so a slow consumer can never hold up the
    watcher; a subscriber whose queue is full is disconnected instead.
    Plain callbacks registered with ``add_listener`` run inline and must
    be quick.
    """

    def __init__(self, queue_size: int = 100) -> None:
        self._queue_size = queue_size
        self._queues: list[asyncio.Queue[ChangeSet | None]] = []
        self._listeners: list[ChangeListener] = []
        self._published = 0

    async def subscribe(self) -> AsyncGenerator[ChangeSet, None]:
        """Yield ChangeSets as they are published.

        The generator unsubscribes itself when the consumer stops iterating.
        """
        queue: asyncio.Queue[ChangeSet | None] = asyncio.Queue(maxsize=self._queue_size)
        self._queues.append(queue)
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event
        finally:
            if queue in self._queues:
                self._queues.remove(queue)

    async def stream_sse(self) -> AsyncGenerator[str, None]:
        """Subscribe and format each ChangeSet as an SSE message."""
        async for change_set in self.subscribe():
            payload = json.dumps(change_set.to_dict())
            yield f"event: records_changed\ndata: {payload}\n\n"

    def add_listener(self, listener: ChangeListener) -> None:
        """Register a callback run synchronously inside ``publish``.

        Listeners run inside the watcher's pass, before ``publish`` returns,
        so the shared cache is already patched when the event reaches any
        queue subscriber. They must not block or do I/O; anything slower
        belongs in a ``subscribe()`` consumer. A listener that raises is
        logged and skipped.
        """
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def publish(self, change_set: ChangeSet) -> None:
        """Fan a ChangeSet out to all subscribers and listeners (fire-and-continue)."""
        self._published += 1

        for listener in list(self._listeners):
            try:
                listener(change_set)
            except Exception:
                logger.exception("Change listener %r failed", listener)

        dead_queues: list[asyncio.Queue[ChangeSet | None]] = []
        for queue in self._queues:
            try:
                queue.put_nowait(change_set)
            except asyncio.QueueFull:
                dead_queues.append(queue)
                logger.warning("Change subscriber queue full — disconnecting")

        for q in dead_queues:
            self._queues.remove(q)
            self._close_queue(q)

    async def shutdown(self) -> None:
        """Disconnect all subscribers."""
        for queue in self._queues:
            self._close_queue(queue)
        self._queues.clear()
        self._listeners.clear()

    @staticmethod
    def _close_queue(queue: asyncio.Queue) -> None:
        # A full queue has no room for the sentinel; drop the oldest event.
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(None)

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)

    @property
    def published_count(self) -> int:
        return self._published
