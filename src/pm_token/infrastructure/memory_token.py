"""In-memory collateral token ledger.

Balances and allowances live in plain dicts keyed by lowercase address.
Used as the market vault for a single-process deployment.
"""

import logging
from collections import defaultdict

from src.pm_common.errors import (
    InsufficientAllowanceError,
    InsufficientBalanceError,
    InvalidAmountError,
)
from src.pm_token.domain.token import ZERO_ADDRESS

logger = logging.getLogger(__name__)


class InMemoryToken:
    def __init__(self, symbol: str = "mUSD", decimals: int = 6) -> None:
        self.symbol = symbol
        self._decimals = decimals
        self._balances: dict[str, int] = defaultdict(int)
        self._allowances: dict[tuple[str, str], int] = defaultdict(int)
        self.total_supply = 0

    async def decimals(self) -> int:
        return self._decimals

    async def balance_of(self, address: str) -> int:
        return self._balances.get(address.lower(), 0)

    async def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner.lower(), spender.lower()), 0)

    async def mint(self, recipient: str, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmountError(f"mint amount must be positive, got {amount}")
        self._balances[recipient.lower()] += amount
        self.total_supply += amount

    async def approve(self, owner: str, spender: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmountError(f"allowance must be non-negative, got {amount}")
        self._allowances[(owner.lower(), spender.lower())] = amount

    async def transfer(self, sender: str, recipient: str, amount: int) -> None:
        self._move(sender.lower(), recipient.lower(), amount)

    async def transfer_from(
        self, spender: str, owner: str, recipient: str, amount: int
    ) -> None:
        key = (owner.lower(), spender.lower())
        allowed = self._allowances.get(key, 0)
        if allowed < amount:
            raise InsufficientAllowanceError(required=amount, available=allowed)
        self._move(owner.lower(), recipient.lower(), amount)
        self._allowances[key] = allowed - amount

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmountError(f"transfer amount must be non-negative, got {amount}")
        if recipient == ZERO_ADDRESS:
            raise InvalidAmountError("transfer to the zero address")
        available = self._balances.get(sender, 0)
        if available < amount:
            raise InsufficientBalanceError(required=amount, available=available)
        self._balances[sender] = available - amount
        self._balances[recipient] += amount
        logger.debug("Token transfer: %s -> %s amount=%d", sender, recipient, amount)
