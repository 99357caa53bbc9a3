"""InMemoryPoolStore — concrete implementation of PoolStoreProtocol.

transaction() keeps an undo log instead of copying the ledger: the first time a
pool, balance row, block entry or fee entry is touched inside the transaction
its previous value is recorded, and the log is replayed backwards if the body
raises. The cost of a rollback is proportional to what the operation touched,
not to the size of the ledger.

Balance rows are indexed by pool id so per-pool scans never see other pools.
"""

import copy
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from src.pm_market.domain.models import HolderBalance, LedgerState, Pool

logger = logging.getLogger(__name__)

_MISSING = object()


class InMemoryPoolStore:
    def __init__(self, state: LedgerState | None = None) -> None:
        self._state = state or LedgerState()
        self._undo: list[Callable[[], None]] | None = None
        self._touched: set[tuple[object, ...]] = set()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if self._undo is not None:
            # Joined to the enclosing transaction
            yield
            return

        self._undo = []
        self._touched = set()
        try:
            yield
        except Exception:
            for undo in reversed(self._undo):
                undo()
            logger.debug("Ledger transaction rolled back (%d entries)", len(self._undo))
            raise
        finally:
            self._undo = None
            self._touched = set()

    def _tracking(self, key: tuple[object, ...]) -> bool:
        """True when ``key`` is touched for the first time in the current transaction."""
        return self._undo is not None and key not in self._touched

    def _record(self, key: tuple[object, ...], undo: Callable[[], None]) -> None:
        """Register undo for the first touch of ``key`` in the current transaction."""
        if self._undo is None or key in self._touched:
            return
        self._touched.add(key)
        self._undo.append(undo)

    # ------------------------------------------------------------------
    # Pools
    # ------------------------------------------------------------------

    def next_pool_id(self) -> int:
        pool_id = self._state.next_pool_id
        self._record(("next_pool_id",), lambda: setattr(self._state, "next_pool_id", pool_id))
        self._state.next_pool_id += 1
        return pool_id

    def pool_count(self) -> int:
        return len(self._state.pools)

    def add_pool(self, pool: Pool) -> None:
        self._record(("pool", pool.id), lambda: self._state.pools.pop(pool.id, None))
        self._state.pools[pool.id] = pool

    def get_pool(self, pool_id: int) -> Pool | None:
        """Returns the live pool; inside a transaction its prior state is kept for undo."""
        pool = self._state.pools.get(pool_id)
        if pool is not None and self._tracking(("pool", pool_id)):
            snapshot = copy.copy(pool)
            self._record(
                ("pool", pool_id),
                lambda: self._state.pools.__setitem__(pool_id, snapshot),
            )
        return pool

    # ------------------------------------------------------------------
    # Holder balances
    # ------------------------------------------------------------------

    def get_balance(self, pool_id: int, address: str) -> HolderBalance:
        """Returns the live balance row, creating an empty one on first access."""
        address = address.lower()
        rows = self._state.balances.setdefault(pool_id, {})
        balance = rows.get(address)
        if balance is None:
            balance = HolderBalance(pool_id=pool_id, address=address)
            rows[address] = balance
            self._record(("balance", pool_id, address), lambda: rows.pop(address, None))
        elif self._tracking(("balance", pool_id, address)):
            snapshot = copy.copy(balance)
            self._record(
                ("balance", pool_id, address),
                lambda: rows.__setitem__(address, snapshot),
            )
        return balance

    def peek_balance(self, pool_id: int, address: str) -> HolderBalance:
        """Read-only lookup; does not create a row."""
        address = address.lower()
        balance = self._state.balances.get(pool_id, {}).get(address)
        return balance or HolderBalance(pool_id=pool_id, address=address)

    def list_balances(self, pool_id: int) -> list[HolderBalance]:
        return list(self._state.balances.get(pool_id, {}).values())

    # ------------------------------------------------------------------
    # Trading block list
    # ------------------------------------------------------------------

    def block(self, pool_id: int, address: str) -> None:
        address = address.lower()
        blocked = self._state.blocked.setdefault(pool_id, set())
        if address in blocked:
            return
        self._record(("blocked", pool_id, address), lambda: blocked.discard(address))
        blocked.add(address)

    def is_blocked(self, pool_id: int, address: str) -> bool:
        return address.lower() in self._state.blocked.get(pool_id, set())

    # ------------------------------------------------------------------
    # Fee ledger
    # ------------------------------------------------------------------

    def _record_fee(self, key: str) -> None:
        fees = self._state.fees
        previous = fees.get(key, _MISSING)

        def undo() -> None:
            if previous is _MISSING:
                fees.pop(key, None)
            else:
                fees[key] = previous

        self._record(("fee", key), undo)

    def credit_fee(self, address: str, amount: int) -> None:
        if amount <= 0:
            return
        key = address.lower()
        self._record_fee(key)
        self._state.fees[key] = self._state.fees.get(key, 0) + amount

    def fee_balance(self, address: str) -> int:
        return self._state.fees.get(address.lower(), 0)

    def clear_fees(self, address: str) -> int:
        key = address.lower()
        self._record_fee(key)
        return self._state.fees.pop(key, 0)
