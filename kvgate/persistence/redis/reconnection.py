"""
Reconnection Strategy - Tracks connection attempts against a RetryStrategy.

Single Responsibility: count failed attempts, ask the configured strategy for
the next delay and wait it out.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from .config import RetryStrategy, default_retry_strategy

logger = logging.getLogger(__name__)


@dataclass
class ReconnectionStrategy:
    """
    Drives retry decisions for connection establishment.

    The wrapped strategy receives the 1-based number of the attempt that just
    failed and returns a delay in milliseconds; None or a non-positive value
    means "stop".

    Usage:
        retry = ReconnectionStrategy(config.retry_strategy)

        while True:
            try:
                await connect()
                retry.reset()
                break
            except ConnectionError:
                retry.record_failure()
                delay = retry.next_delay()
                if delay is None:
                    raise
                await retry.wait(delay)
    """

    strategy: RetryStrategy = default_retry_strategy
    _attempt_count: int = field(default=0, init=False)

    @property
    def attempt_count(self) -> int:
        """Number of failed attempts since the last reset."""
        return self._attempt_count

    def record_failure(self) -> None:
        self._attempt_count += 1
        logger.warning("Redis connection attempt %d failed", self._attempt_count)

    def reset(self) -> None:
        """Reset attempt counter after a successful connection."""
        if self._attempt_count > 0:
            logger.debug(
                "Redis reconnected after %d failed attempts, resetting counter",
                self._attempt_count,
            )
        self._attempt_count = 0

    def next_delay(self) -> float | None:
        """
        Ask the strategy for the delay before the next attempt.

        Returns:
            Delay in seconds, or None when the strategy signals stop
        """
        delay_ms = self.strategy(self._attempt_count)
        if delay_ms is None or delay_ms <= 0:
            logger.error(
                "Retry strategy stopped reconnection after %d attempts",
                self._attempt_count,
            )
            return None
        return delay_ms / 1000

    async def wait(self, delay: float) -> None:
        logger.info("Reconnecting to Redis in %.3f seconds...", delay)
        await asyncio.sleep(delay)

    def get_status(self) -> dict:
        """Current attempt count and the delay the strategy would pick next."""
        next_delay = self.strategy(self._attempt_count + 1)
        return {
            "attempt_count": self._attempt_count,
            "next_delay_ms": next_delay if next_delay and next_delay > 0 else None,
        }
