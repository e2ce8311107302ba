"""Redis pub/sub invalidation channel.

Broadcasts key invalidations to every service instance. When any
instance invalidates a key, all instances (itself included) receive
the message and drop their local L1 copy.

Example:
    channel = RedisInvalidationChannel(client, "cache:invalidate")
    channel.subscribe(handle_invalidation)
    await channel.start()

    await channel.publish(InvalidationMessage("patients:42"))
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from rxcache.core.entities.invalidation_message import InvalidationMessage
from rxcache.core.interfaces.invalidation_channel import InvalidationHandler

if TYPE_CHECKING:
    from redis.asyncio import Redis
    from redis.asyncio.client import PubSub

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = "cache:invalidate"


class RedisInvalidationChannel:
    """Publishes and receives invalidation messages via Redis pub/sub.

    When started, it subscribes to the channel and runs a listener task
    that calls every registered handler once per message. Failures are
    logged and swallowed: a broken channel only widens the stale window
    to the L1 TTL.
    """

    def __init__(
        self,
        client: Redis,
        channel: str = DEFAULT_CHANNEL,
        poll_timeout: float = 1.0,
        error_backoff: float = 1.0,
    ) -> None:
        self.channel = channel
        self._client = client
        self._poll_timeout = poll_timeout
        self._error_backoff = error_backoff
        self._handlers: list[InvalidationHandler] = []
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._pubsub: PubSub | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    def subscribe(self, handler: InvalidationHandler) -> None:
        """Register a handler for invalidation messages."""
        self._handlers.append(handler)
        handler_name = getattr(handler, "__name__", handler.__class__.__name__)
        logger.info("Registered invalidation handler: %s", handler_name)

    @property
    def is_subscribed(self) -> bool:
        return self._pubsub is not None

    async def start(self) -> None:
        """Start the listener task.

        The task subscribes to the channel. If Redis is unreachable the
        subscription is retried every ``error_backoff`` seconds until it
        succeeds or the channel is stopped.
        """
        if self._running:
            return

        self._running = True
        await self._subscribe()
        self._task = asyncio.create_task(self._listen_loop())

    async def stop(self) -> None:
        """Stop listening and release the subscription."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._pubsub:
            try:
                await self._pubsub.unsubscribe(self.channel)
                await self._pubsub.aclose()
            except Exception as e:
                logger.warning("Error closing invalidation subscription: %s", e)
            self._pubsub = None

        logger.info("Stopped cache invalidation channel %s", self.channel)

    async def publish(self, message: InvalidationMessage) -> None:
        """Publish an invalidation message to all instances."""
        try:
            count = await self._client.publish(self.channel, message.to_bytes())
        except Exception as e:
            logger.error(
                "Failed to publish cache invalidation for key %s. "
                "Continuing without pub/sub invalidation: %s",
                message.key,
                e,
            )
            return
        logger.debug("Published invalidation %s to %s subscribers", message.key, count)

    async def _subscribe(self) -> bool:
        """Subscribe to the channel. Returns False if Redis refused."""
        pubsub = self._client.pubsub()
        try:
            await pubsub.subscribe(self.channel)
        except Exception as e:
            logger.error(
                "Failed to subscribe to cache invalidation channel %s. "
                "Retrying in %.1fs: %s",
                self.channel,
                self._error_backoff,
                e,
            )
            try:
                await pubsub.aclose()
            except Exception as close_error:
                logger.debug("Error closing failed subscription: %s", close_error)
            return False

        self._pubsub = pubsub
        logger.info("Subscribed to cache invalidation channel: %s", self.channel)
        return True

    async def _listen_loop(self) -> None:
        """Main loop for receiving invalidation messages."""
        while self._running:
            if self._pubsub is None:
                if not await self._subscribe():
                    await asyncio.sleep(self._error_backoff)
                continue

            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=self._poll_timeout,
                )

                if message is None:
                    continue

                if message["type"] == "message":
                    await self._handle_message(message["data"])

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Error in invalidation listener: %s", e)
                await asyncio.sleep(self._error_backoff)

    async def _handle_message(self, data: bytes | str) -> None:
        """Handle an incoming invalidation message."""
        try:
            msg = InvalidationMessage.from_bytes(data)
        except ValueError as e:
            logger.error("Failed to parse invalidation message: %s", e)
            return

        logger.debug("Received cache invalidation for key: %s", msg.key)
        for handler in self._handlers:
            try:
                await handler(msg)
            except Exception as e:
                logger.error("Invalidation handler failed for key %s: %s", msg.key, e)
