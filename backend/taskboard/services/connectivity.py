import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from ..core.errors import StorageError
from ..db.crud import SqlTaskBackend

logger = logging.getLogger(__name__)


@dataclass
class BackendState:
    """
    Whether the durable store is currently usable, and the handle to it.

    While a durable store is configured but not connected, callers may
    re-check it at most once per ``recheck_interval`` seconds. No re-checks
    happen while the startup connect loop is still running.
    """

    durable: Optional[SqlTaskBackend] = None
    connected: bool = False
    recheck_interval: float = 5.0
    last_probe: Optional[float] = None
    probing: bool = False

    def mark_connected(self) -> None:
        self.connected = self.durable is not None

    def mark_disconnected(self) -> None:
        self.connected = False
        self.last_probe = time.monotonic()

    def recheck_due(self) -> bool:
        if self.connected or self.probing or self.durable is None:
            return False
        return self.last_probe is None or time.monotonic() - self.last_probe >= self.recheck_interval

    def recheck(self) -> bool:
        """Ping the durable store once and update the flag. Returns the new flag."""
        self.last_probe = time.monotonic()
        try:
            self.durable.ping()
        except StorageError as e:
            logger.debug("Durable store still unreachable: %s", e.message)
            return False
        logger.info("Durable store reachable again")
        self.mark_connected()
        return self.connected


async def connect_durable_store(
    state: BackendState,
    *,
    retries: int = 3,
    base_delay: float = 1.0,
    timeout: float = 5.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> bool:
    """
    Try to reach the durable store: one attempt, then up to ``retries``
    retries with exponential backoff (base_delay, 2*base_delay, ...). Each
    attempt is abandoned after ``timeout`` seconds.

    Returns True once connected. When every attempt fails the state stays
    disconnected and the application keeps serving from the fallback.
    """
    if state.durable is None:
        logger.warning("No usable DATABASE_URL configured. Serving tasks from in-memory fallback.")
        return False

    state.probing = True
    try:
        attempt = 0
        while True:
            attempt += 1
            state.last_probe = time.monotonic()
            try:
                await asyncio.wait_for(asyncio.to_thread(state.durable.ping), timeout)
            except StorageError as e:
                reason = e.message
            except asyncio.TimeoutError:
                reason = f"no answer within {timeout:.1f}s"
            else:
                state.mark_connected()
                logger.info("Connected to durable store (attempt %d)", attempt)
                return True

            logger.error("Durable store connection attempt %d failed: %s", attempt, reason)
            if attempt > retries:
                logger.warning(
                    "Max durable store connection attempts reached. "
                    "Continuing in in-memory fallback mode."
                )
                return False
            delay = base_delay * 2 ** (attempt - 1)
            logger.info("Retrying durable store connection in %.1fs...", delay)
            await sleep(delay)
    finally:
        state.probing = False
