"""Invalidation channel interface."""

from collections.abc import Awaitable, Callable
from typing import Protocol

from rxcache.core.entities.invalidation_message import InvalidationMessage

InvalidationHandler = Callable[[InvalidationMessage], Awaitable[None]]


class IInvalidationChannel(Protocol):
    """Contract for broadcasting key invalidations between instances.

    Delivery is at-least-once and may include the publisher itself,
    so handlers must be idempotent. Channel failures degrade
    consistency but never raise into the caller.
    """

    def subscribe(self, handler: InvalidationHandler) -> None:
        """Register a handler invoked once per received message."""
        ...

    async def publish(self, message: InvalidationMessage) -> None:
        """Broadcast a message to every subscriber."""
        ...

    async def start(self) -> None:
        """Start delivering messages to subscribed handlers."""
        ...

    async def stop(self) -> None:
        """Stop delivering messages and release resources."""
        ...
