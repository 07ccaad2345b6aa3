import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def poll_until(
    probe: Callable[[], Awaitable[T]],
    is_done: Callable[[T], bool],
    interval_ms: int,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Call ``probe`` until ``is_done`` accepts its result.

    A failing probe, or an ``is_done`` that raises, ends polling with that
    exception. There is no attempt cap and no timeout: callers wanting a
    deadline check the clock inside ``is_done``.
    """
    attempt = 0
    while True:
        attempt += 1
        result = await probe()
        if is_done(result):
            logger.info(f"Polling finished after {attempt} attempt(s)")
            return result
        await sleep(interval_ms / 1000.0)
