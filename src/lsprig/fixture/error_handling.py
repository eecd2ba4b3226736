"""Error handling for fixture server feature handlers."""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, ParamSpec, TypeVar, cast

P = ParamSpec("P")
R = TypeVar("R")


def _describe(args: tuple[Any, ...]) -> str:
    params = args[-1] if args else None
    document = getattr(params, "text_document", None)
    uri = getattr(document, "uri", None)
    return f" for {uri}" if uri else ""


def wrap_handler(
    *,
    logger: logging.Logger,
    method: str,
    default_factory: Callable[[], Any] = lambda: None,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator that keeps a failing handler from taking the fixture server down.

    Works for plain and coroutine handlers. Exceptions (other than
    cancellation) are logged with the method and document URI, and the
    handler answers with ``default_factory()`` instead.

    Args:
        logger: Logger instance for error logging.
        method: LSP method the handler serves.
        default_factory: Callable that returns the fallback result.

    Returns:
        Decorator function.
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        if inspect.iscoroutinefunction(func):
            async_func = cast(Callable[P, Awaitable[Any]], func)

            @functools.wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> Any:
                try:
                    return await async_func(*args, **kwargs)
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("Error in %s handler%s", method, _describe(args))
                    return default_factory()

            return cast(Callable[P, R], async_wrapper)

        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return func(*args, **kwargs)
            except Exception:
                logger.exception("Error in %s handler%s", method, _describe(args))
                return cast(R, default_factory())

        return wrapper

    return decorator
