"""ResolutionCoordinator — applies oracle answers to pools.

Runs under the Market's operation lock, so a callback never interleaves with a
trade or a withdrawal. The resolution is written before any event goes out.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import OracleOutcome, Resolution
from src.pm_common.errors import (
    PoolAlreadyResolvedError,
    PoolNotFoundError,
    UnauthorizedCallerError,
)
from src.pm_common.events import EventBus
from src.pm_market.domain.events import PoolResolved
from src.pm_market.domain.models import Pool
from src.pm_market.domain.repository import PoolStoreProtocol

logger = logging.getLogger(__name__)

_OUTCOME_TO_RESOLUTION: dict[OracleOutcome, Resolution] = {
    OracleOutcome.TRUE: Resolution.YES,
    OracleOutcome.FALSE: Resolution.NO,
    OracleOutcome.INCONCLUSIVE: Resolution.INCONCLUSIVE,
}


def map_outcome(outcome: OracleOutcome) -> Resolution:
    """TRUE -> YES, FALSE -> NO, INCONCLUSIVE -> INCONCLUSIVE, UNKNOWN -> UNRESOLVED."""
    return _OUTCOME_TO_RESOLUTION.get(outcome, Resolution.UNRESOLVED)


def settle_pool(pool: Pool, resolution: Resolution, now: datetime) -> None:
    """Write a final resolution onto an unresolved pool. Set at most once."""
    if pool.is_resolved:
        raise PoolAlreadyResolvedError(pool.id)
    pool.resolution = resolution
    pool.resolved_at = now
    pool.resolution_requested_at = None


class ResolutionCoordinator:
    def __init__(
        self,
        store: PoolStoreProtocol,
        lock: asyncio.Lock,
        gateway_address: str,
        event_bus: EventBus | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._lock = lock
        self._gateway_address = gateway_address.lower()
        self._event_bus = event_bus or EventBus()
        self._clock = clock

    def _check_caller(self, caller: str) -> None:
        if caller.lower() != self._gateway_address:
            raise UnauthorizedCallerError("Only the oracle gateway can call this function")

    def _unresolved_pool(self, pool_id: int) -> Pool:
        pool = self._store.get_pool(pool_id)
        if pool is None:
            raise PoolNotFoundError(pool_id)
        if pool.is_resolved:
            raise PoolAlreadyResolvedError(pool_id)
        return pool

    async def on_pool_resolve(
        self, caller: str, pool_id: int, outcome: OracleOutcome
    ) -> None:
        self._check_caller(caller)
        event: PoolResolved | None = None
        async with self._lock:
            async with self._store.transaction():
                pool = self._unresolved_pool(pool_id)
                resolution = map_outcome(OracleOutcome(outcome))
                if resolution == Resolution.UNRESOLVED:
                    # UNKNOWN: nothing to settle, allow a fresh resolve()
                    pool.resolution_requested_at = None
                    logger.warning("Pool %d: oracle outcome unknown, left unresolved", pool_id)
                else:
                    settle_pool(pool, resolution, self._clock())
                    event = PoolResolved(pool_id=pool_id, resolution=resolution.value)
                    logger.info("Pool %d resolved: %s", pool_id, resolution.value)
        if event is not None:
            self._event_bus.publish(event)

    async def on_pool_resolve_failed(self, caller: str, pool_id: int, error: str) -> None:
        self._check_caller(caller)
        async with self._lock:
            async with self._store.transaction():
                pool = self._unresolved_pool(pool_id)
                pool.resolution_requested_at = None
        logger.warning("Pool %d: oracle resolution failed: %s", pool_id, error)
