"""Cache key value object."""

from dataclasses import dataclass

WILDCARD = "*"


@dataclass(frozen=True)
class CacheKey:
    """Immutable cache key value object.

    Namespaces a logical key with the configured instance prefix so
    several logical cache users can share one physical Redis store.
    A key ending in ``*`` is a pattern: it names every key starting
    with the text before the wildcard and is only valid for
    invalidation, never for storage.
    """

    namespace: str
    key: str

    def __str__(self) -> str:
        """Return the full namespaced key string."""
        return f"{self.namespace}{self.key}"

    @property
    def is_pattern(self) -> bool:
        return is_pattern(self.key)

    @property
    def pattern_prefix(self) -> str:
        """The logical prefix of a pattern key.

        Raises:
            ValueError: If the key is not a pattern.
        """
        if not self.is_pattern:
            raise ValueError(f"Cache key {self.key!r} is not a pattern")
        return self.key[: -len(WILDCARD)]

    def storable(self) -> str:
        """Return the full key for storage.

        Raises:
            ValueError: If the key is a pattern.
        """
        if self.is_pattern:
            raise ValueError(f"Pattern key {self.key!r} cannot be stored")
        return str(self)


def is_pattern(key: str) -> bool:
    """Check if a logical key is a trailing-wildcard pattern."""
    return key.endswith(WILDCARD)


def as_pattern(prefix: str) -> str:
    """Build the pattern key matching every key starting with ``prefix``."""
    return f"{prefix}{WILDCARD}"
