"""Framework-agnostic cache decorators.

These decorators provide endpoint- and function-level caching. They
work with any async framework by using a configured cache service;
route handlers in FastAPI can use them directly since route parameters
arrive as keyword arguments.
"""

import functools
import inspect
import re
from collections.abc import Callable
from datetime import timedelta
from typing import Any, TypeVar

from rxcache.core.interfaces.cache_service import ICacheService
from rxcache.pipeline import invalidate_keys

F = TypeVar("F", bound=Callable[..., Any])

# Module-level cache service reference
_cache_service: ICacheService | None = None

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def configure(cache_service: ICacheService | None) -> None:
    """Configure the cache service for decorators.

    Must be called before ``@cached`` or ``@invalidates`` take effect;
    until then decorated functions run uncached. Passing None turns
    caching off again.

    Example:
        runtime = await bootstrap(CacheSettings.from_env())
        configure(runtime.service)
    """
    global _cache_service
    _cache_service = cache_service


def get_cache_service() -> ICacheService | None:
    """Get the configured cache service, or None if not configured."""
    return _cache_service


def cached(
    key: str | Callable[..., str],
    ttl: timedelta | None = None,
    bypass: bool = False,
) -> Callable[[F], F]:
    """Decorator for read-through caching of async function results.

    Args:
        key: Cache key. If a string, supports ``{arg_name}``
            interpolation from the call's arguments. If callable,
            receives ``(*args, **kwargs)`` and returns the key.
        ttl: Time-to-live for cached results. Uses the tier default if None.
        bypass: Always call the function without touching the cache.

    Returns:
        Decorated function.

    Example:
        @cached(key="patients:{patient_id}", ttl=timedelta(minutes=1))
        async def get_patient(patient_id: str) -> dict:
            return await repository.get(patient_id)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            if _cache_service is None or bypass:
                return await func(*args, **kwargs)

            cache_key = _build_cache_key(func, key, args, kwargs)
            return await _cache_service.get_or_add(
                cache_key,
                lambda: func(*args, **kwargs),
                ttl,
            )

        return wrapper  # type: ignore

    return decorator


def invalidates(keys: list[str]) -> Callable[[F], F]:
    """Decorator for invalidating cache entries after a write.

    Runs the decorated function and, only if it returns normally,
    invalidates the given keys. Keys support ``{arg_name}``
    interpolation; a trailing ``*`` invalidates a whole prefix.

    Example:
        @invalidates(keys=["patients:{patient_id}", "patients:list:*"])
        async def update_patient(patient_id: str, data: dict) -> dict:
            return await repository.update(patient_id, data)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            result = await func(*args, **kwargs)

            if _cache_service is not None:
                arguments = _bind_arguments(func, args, kwargs)
                resolved = [_interpolate_string(k, arguments) for k in keys]
                await invalidate_keys(_cache_service, resolved)

            return result

        return wrapper  # type: ignore

    return decorator


def _build_cache_key(
    func: Callable[..., Any],
    custom_key: str | Callable[..., str],
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> str:
    if callable(custom_key):
        return custom_key(*args, **kwargs)
    return _interpolate_string(custom_key, _bind_arguments(func, args, kwargs))


def _bind_arguments(
    func: Callable[..., Any],
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> dict[str, Any]:
    """Map positional and keyword arguments to parameter names."""
    try:
        bound = inspect.signature(func).bind_partial(*args, **kwargs)
    except (TypeError, ValueError):
        return dict(kwargs)
    bound.apply_defaults()
    return dict(bound.arguments)


def _interpolate_string(template: str, arguments: dict[str, Any]) -> str:
    """Interpolate ``{arg_name}`` placeholders in a key template.

    Unknown placeholders are left as they are.
    """

    def replacer(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in arguments:
            return str(arguments[name])
        return match.group(0)

    return _PLACEHOLDER.sub(replacer, template)
