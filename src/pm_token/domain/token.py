# src/pm_token/domain/token.py
"""Collateral token Protocol — the fungible-token surface the market depends on.

Amounts are integer token units (10**decimals units per whole token).
The market reads decimals() once when it is configured.
"""

from typing import Protocol

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class CollateralTokenProtocol(Protocol):
    async def decimals(self) -> int: ...

    async def balance_of(self, address: str) -> int: ...

    async def transfer(self, sender: str, recipient: str, amount: int) -> None: ...

    async def transfer_from(
        self, spender: str, owner: str, recipient: str, amount: int
    ) -> None: ...
