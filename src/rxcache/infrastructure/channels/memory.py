"""In-process invalidation channel."""

import asyncio
import logging

from rxcache.core.entities.invalidation_message import InvalidationMessage
from rxcache.core.interfaces.invalidation_channel import InvalidationHandler

logger = logging.getLogger(__name__)


class InvalidationHub:
    """Broadcast hub shared by in-process channels.

    Stands in for the Redis server: every channel attached to the same
    hub receives every message published through any of them.
    """

    def __init__(self) -> None:
        self._queues: list[asyncio.Queue[InvalidationMessage]] = []

    def attach(self) -> "asyncio.Queue[InvalidationMessage]":
        queue: asyncio.Queue[InvalidationMessage] = asyncio.Queue()
        self._queues.append(queue)
        return queue

    def detach(self, queue: "asyncio.Queue[InvalidationMessage]") -> None:
        if queue in self._queues:
            self._queues.remove(queue)

    def broadcast(self, message: InvalidationMessage) -> int:
        for queue in self._queues:
            queue.put_nowait(message)
        return len(self._queues)


class InMemoryInvalidationChannel:
    """Invalidation channel for a single process or for tests.

    Each channel reads its own queue on a listener task and hands every
    message to its handlers, the same way the Redis channel does.
    """

    def __init__(self, hub: InvalidationHub | None = None) -> None:
        self.hub = hub or InvalidationHub()
        self._handlers: list[InvalidationHandler] = []
        self._queue: asyncio.Queue[InvalidationMessage] | None = None
        self._task: asyncio.Task[None] | None = None
        self.published: list[InvalidationMessage] = []

    @property
    def is_running(self) -> bool:
        return self._task is not None

    def subscribe(self, handler: InvalidationHandler) -> None:
        self._handlers.append(handler)

    async def start(self) -> None:
        if self._task is not None:
            return
        self._queue = self.hub.attach()
        self._task = asyncio.create_task(self._listen_loop(self._queue))

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._queue is not None:
            self.hub.detach(self._queue)
            self._queue = None

    async def publish(self, message: InvalidationMessage) -> None:
        self.published.append(message)
        self.hub.broadcast(message)

    async def drain(self) -> None:
        """Wait until every queued message has been handled."""
        if self._queue is not None:
            await self._queue.join()

    async def _listen_loop(self, queue: "asyncio.Queue[InvalidationMessage]") -> None:
        while True:
            message = await queue.get()
            try:
                for handler in self._handlers:
                    try:
                        await handler(message)
                    except Exception as e:
                        logger.error(
                            "Invalidation handler failed for key %s: %s", message.key, e
                        )
            finally:
                queue.task_done()
