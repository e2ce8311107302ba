"""Invalidation message entity."""

from dataclasses import dataclass

from rxcache.core.entities.cache_key import WILDCARD, as_pattern, is_pattern


@dataclass(frozen=True)
class InvalidationMessage:
    """Key invalidation broadcast over the pub/sub channel.

    Carries nothing but the logical key; receivers drop their local
    copy and re-fetch on next access. A key ending in ``*`` asks
    receivers to drop every key with that prefix. Handling is
    idempotent, so duplicate and self-delivered messages are harmless.
    """

    key: str

    @property
    def is_prefix(self) -> bool:
        return is_pattern(self.key)

    @property
    def prefix(self) -> str:
        return self.key[: -len(WILDCARD)] if self.is_prefix else self.key

    def to_bytes(self) -> bytes:
        """Serialize to the plain UTF-8 key."""
        return self.key.encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes | str) -> "InvalidationMessage":
        """Deserialize from the wire format.

        Raises:
            ValueError: If the payload is empty or not UTF-8.
        """
        key = data.decode("utf-8") if isinstance(data, bytes) else data
        if not key:
            raise ValueError("Empty invalidation message")
        return cls(key=key)

    @classmethod
    def for_prefix(cls, prefix: str) -> "InvalidationMessage":
        return cls(key=as_pattern(prefix))
