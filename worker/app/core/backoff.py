"""Backoff schedule for broker connection attempts.

`exponential_backoff` yields `(attempt, delay)`; the caller tries once per
item and breaks on success. `delay` is how long the generator will sleep
before the next attempt, capped at `max_delay`. Nothing is slept after the
final attempt.
"""
import asyncio
from typing import AsyncIterator


async def exponential_backoff(
    initial_delay: float,
    max_delay: float,
    multiplier: float,
    max_attempts: int,
) -> AsyncIterator[tuple[int, float]]:
    attempts = max(max_attempts, 1)
    for attempt in range(1, attempts + 1):
        delay = min(initial_delay * multiplier ** (attempt - 1), max_delay)
        yield attempt, delay
        if attempt < attempts:
            await asyncio.sleep(delay)
