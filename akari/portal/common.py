"""Shared pieces of the aggregation layer."""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, ParamSpec, TypeVar

from akari.utils.logger import get_logger

logger = get_logger("portal")

P = ParamSpec("P")
T = TypeVar("T")


@dataclass(frozen=True)
class InvalidInputError:
    """Validation failure handed back to the handler layer instead of raised."""

    param: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"ok": False, "error": self.message, "param": self.param}


@dataclass(frozen=True)
class WindowedResult(Generic[T]):
    """Rows inside the recent window plus the newest row of a wider window.

    ``last_any`` is the first recent row when there is one.
    """

    recent: list[T] = field(default_factory=list)
    last_any: T | None = None


def degrade_on_error(
    fallback: Callable[[], T],
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Turn a failing query into ``fallback()`` with a ``portal_query_failed`` log.

    ``fallback`` is a factory so each call gets a fresh empty value.
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                logger.warning("portal_query_failed", query=func.__name__, error=str(e))
                return fallback()

        return wrapper

    return decorator
