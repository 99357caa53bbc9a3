"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from contextlib import AbstractAsyncContextManager
from typing import Protocol

from src.pm_market.domain.models import HolderBalance, Pool


class PoolStoreProtocol(Protocol):
    def transaction(self) -> AbstractAsyncContextManager[None]: ...

    def next_pool_id(self) -> int: ...

    def pool_count(self) -> int: ...

    def add_pool(self, pool: Pool) -> None: ...

    def get_pool(self, pool_id: int) -> Pool | None: ...

    def get_balance(self, pool_id: int, address: str) -> HolderBalance: ...

    def peek_balance(self, pool_id: int, address: str) -> HolderBalance: ...

    def list_balances(self, pool_id: int) -> list[HolderBalance]: ...

    def block(self, pool_id: int, address: str) -> None: ...

    def is_blocked(self, pool_id: int, address: str) -> bool: ...

    def credit_fee(self, address: str, amount: int) -> None: ...

    def fee_balance(self, address: str) -> int: ...

    def clear_fees(self, address: str) -> int: ...
