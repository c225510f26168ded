"""
Asynchronous utility helpers for the HDInsight provisioner.

Provides utilities for:
- Timeout management for async operations
- Awaiting Azure long-running operation pollers
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def timeout_wrapper(
    coro: Awaitable[T], timeout_seconds: float = 30
) -> T:
    """
    Wrap a coroutine with a timeout.

    Cancels the coroutine if it exceeds the specified timeout.

    Args:
        coro: Coroutine to execute
        timeout_seconds: Timeout in seconds (default: 30)

    Returns:
        Result of coroutine

    Raises:
        asyncio.TimeoutError: If coroutine exceeds timeout
        Any exceptions raised by the coroutine

    Example:
        try:
            result = await timeout_wrapper(long_operation(), timeout_seconds=10)
        except asyncio.TimeoutError:
            logger.error("Operation timed out")
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout_seconds)
    except asyncio.TimeoutError:
        logger.error(
            f"Coroutine exceeded timeout of {timeout_seconds} seconds"
        )
        raise


async def wait_for_poller(
    begin: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any
) -> Any:
    """
    Start a long-running operation and wait for its terminal state.

    Args:
        begin: An SDK ``begin_*`` coroutine function returning an AsyncLROPoller
        *args: Positional arguments for begin
        **kwargs: Keyword arguments for begin

    Returns:
        The final result of the poller

    Example:
        cluster = await wait_for_poller(
            client.clusters.begin_create, resource_group, name, params
        )
    """
    poller = await begin(*args, **kwargs)
    return await poller.result()
