"""Market — LMSR pool ledger and the entry point for every market operation.

Mutating operations run under one asyncio.Lock (the collateral vault and fee
ledger are shared by all pools) and inside a store transaction, so a failed
token transfer or pricing error restores the ledger. Ledger state is written
first, token transfers happen last, events are published after commit.
The oracle submission in resolve() is the one await made outside the lock.
"""

import asyncio
import copy
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import Resolution, Side, TradeDirection
from src.pm_common.errors import (
    GracePeriodNotElapsedError,
    InsufficientCollateralError,
    InsufficientSharesError,
    InvalidAmountError,
    InvalidPoolParamsError,
    NoFeesToWithdrawError,
    NoFundsToWithdrawError,
    NotYetResolutionTimeError,
    PoolAlreadyResolvedError,
    PoolNotFoundError,
    PoolNotResolvedError,
    ResolutionPendingError,
    TradingBlockedError,
    TradingClosedError,
    UnauthorizedCallerError,
)
from src.pm_common.events import EventBus
from src.pm_market.application.resolution import ResolutionCoordinator, settle_pool
from src.pm_market.domain.events import (
    BetCreated,
    FeesWithdrawn,
    PoolResolved,
    PoolResolving,
    TradeExecuted,
    Withdrawn,
)
from src.pm_market.domain.fee import calc_fee, split_fee
from src.pm_market.domain.invariants import verify_pool_invariants
from src.pm_market.domain.models import FeeSplit, MarketConfig, Pool, TradeQuote
from src.pm_market.domain.payout import compute_payout
from src.pm_market.domain.repository import PoolStoreProtocol
from src.pm_market.domain.resolver import ResolverProtocol
from src.pm_market.infrastructure.memory_store import InMemoryPoolStore
from src.pm_pricing.engine import PricingEngine
from src.pm_token.domain.token import CollateralTokenProtocol

logger = logging.getLogger(__name__)


class Market:
    def __init__(
        self,
        token: CollateralTokenProtocol,
        engine: PricingEngine,
        config: MarketConfig,
        store: PoolStoreProtocol | None = None,
        resolver: ResolverProtocol | None = None,
        event_bus: EventBus | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._token = token
        self._engine = engine
        self._config = config
        self._store: PoolStoreProtocol = store or InMemoryPoolStore()
        self._resolver = resolver
        self._event_bus = event_bus or EventBus()
        self._clock = clock
        self._lock = asyncio.Lock()
        self.coordinator = ResolutionCoordinator(
            self._store, self._lock, config.oracle_address, self._event_bus, clock
        )

    @property
    def address(self) -> str:
        return self._config.address

    @property
    def config(self) -> MarketConfig:
        return self._config

    def set_resolver(self, resolver: ResolverProtocol) -> None:
        self._resolver = resolver

    # ------------------------------------------------------------------
    # Pool creation
    # ------------------------------------------------------------------

    async def create_bet(
        self,
        caller: str,
        title: str,
        resolution_prompt: str,
        initial_liquidity: int,
        closing_time: datetime,
        resolution_time: datetime,
        liquidity_parameter: int | None = None,
        discussion_url: str = "",
        tags: str = "",
        logo_url: str = "",
    ) -> Pool:
        """Open a pool. Returns a copy of the created Pool.

        The creator receives (liquidity + bonus) // 2 shares of each side, is
        blocked from trading the pool, and pays initial_liquidity into the vault.
        liquidity_parameter is b in token units; omitted, it is derived from the
        initial liquidity.
        """
        caller = caller.lower()
        cfg = self._config
        self._validate_text("title", title, cfg.max_title_length, required=True)
        self._validate_text(
            "resolution_prompt", resolution_prompt, cfg.max_prompt_length, required=True
        )
        for name, value in (
            ("discussion_url", discussion_url),
            ("tags", tags),
            ("logo_url", logo_url),
        ):
            self._validate_text(name, value, cfg.max_metadata_length, required=False)
        if initial_liquidity <= 0:
            raise InvalidPoolParamsError("initial liquidity must be positive")

        if liquidity_parameter is None:
            liquidity_parameter = (
                initial_liquidity * cfg.default_liquidity_parameter_bps // 10000
            )
        if liquidity_parameter <= 0:
            raise InvalidPoolParamsError("liquidity parameter must be positive")

        bonus = initial_liquidity * cfg.creator_bonus_percent // 100
        initial_shares = (initial_liquidity + bonus) // 2

        async with self._lock:
            now = self._clock()
            if closing_time <= now:
                raise InvalidPoolParamsError("closing time must be in the future")
            if resolution_time < closing_time:
                raise InvalidPoolParamsError("resolution time must not precede closing time")

            async with self._store.transaction():
                pool = Pool(
                    id=self._store.next_pool_id(),
                    creator=caller,
                    title=title,
                    resolution_prompt=resolution_prompt,
                    closing_time=closing_time,
                    resolution_time=resolution_time,
                    b=self._engine.to_fixed(liquidity_parameter),
                    n_yes=self._engine.to_fixed(initial_shares),
                    n_no=self._engine.to_fixed(initial_shares),
                    total_supply_yes=initial_shares,
                    total_supply_no=initial_shares,
                    collateral=initial_liquidity,
                    discussion_url=discussion_url,
                    tags=tags,
                    logo_url=logo_url,
                    created_at=now,
                )
                self._store.add_pool(pool)
                balance = self._store.get_balance(pool.id, caller)
                balance.yes = initial_shares
                balance.no = initial_shares
                self._store.block(pool.id, caller)
                self._verify(pool)

                await self._token.transfer_from(
                    self.address, caller, self.address, initial_liquidity
                )
            created = copy.copy(pool)

        logger.info(
            "Pool %d created by %s: liquidity=%d, b=%d, shares=%d/%d",
            created.id, caller, initial_liquidity, liquidity_parameter,
            initial_shares, initial_shares,
        )
        self._event_bus.publish(
            BetCreated(
                pool_id=created.id,
                creator=caller,
                title=title,
                initial_liquidity=initial_liquidity,
                closing_time=closing_time.isoformat(),
            )
        )
        return created

    @staticmethod
    def _validate_text(name: str, value: str, max_length: int, required: bool) -> None:
        if required and not value.strip():
            raise InvalidPoolParamsError(f"{name} must not be empty")
        if len(value) > max_length:
            raise InvalidPoolParamsError(f"{name} exceeds {max_length} characters")

    # ------------------------------------------------------------------
    # Trading
    # ------------------------------------------------------------------

    async def buy_yes(
        self, caller: str, pool_id: int, amount: int, referrer: str | None = None
    ) -> TradeQuote:
        return await self._buy(caller, pool_id, Side.YES, amount, referrer)

    async def buy_no(
        self, caller: str, pool_id: int, amount: int, referrer: str | None = None
    ) -> TradeQuote:
        return await self._buy(caller, pool_id, Side.NO, amount, referrer)

    async def sell_yes(
        self, caller: str, pool_id: int, amount: int, referrer: str | None = None
    ) -> TradeQuote:
        return await self._sell(caller, pool_id, Side.YES, amount, referrer)

    async def sell_no(
        self, caller: str, pool_id: int, amount: int, referrer: str | None = None
    ) -> TradeQuote:
        return await self._sell(caller, pool_id, Side.NO, amount, referrer)

    async def _buy(
        self, caller: str, pool_id: int, side: Side, amount: int, referrer: str | None
    ) -> TradeQuote:
        caller = caller.lower()
        if amount <= 0:
            raise InvalidAmountError(f"amount must be positive, got {amount}")

        async with self._lock:
            async with self._store.transaction():
                pool = self._get_pool(pool_id)
                self._check_trading(pool, caller)

                net_cost = self._engine.cost_to_buy(pool.n_yes, pool.n_no, pool.b, side, amount)
                if net_cost <= 0:
                    raise InvalidAmountError("trade too small: cost rounds to zero")
                fee = calc_fee(net_cost, self._config.total_fee_bps)
                split = self._split(fee, referrer)

                delta = self._engine.to_fixed(amount)
                balance = self._store.get_balance(pool_id, caller)
                pool.collateral += net_cost
                if side == Side.YES:
                    pool.n_yes += delta
                    pool.total_supply_yes += amount
                    balance.yes += amount
                else:
                    pool.n_no += delta
                    pool.total_supply_no += amount
                    balance.no += amount
                self._credit_split(split)
                self._verify(pool)

                await self._token.transfer_from(
                    self.address, caller, self.address, net_cost + fee
                )

        quote = TradeQuote(
            pool_id=pool_id,
            side=side.value,
            direction=TradeDirection.BUY.value,
            amount=amount,
            gross=net_cost,
            fee=fee,
            total=net_cost + fee,
        )
        logger.info(
            "Buy %s: pool=%d, trader=%s, amount=%d, cost=%d, fee=%d",
            side.value, pool_id, caller, amount, net_cost, fee,
        )
        self._publish_trade(quote, caller, split)
        return quote

    async def _sell(
        self, caller: str, pool_id: int, side: Side, amount: int, referrer: str | None
    ) -> TradeQuote:
        caller = caller.lower()
        if amount <= 0:
            raise InvalidAmountError(f"amount must be positive, got {amount}")

        async with self._lock:
            async with self._store.transaction():
                pool = self._get_pool(pool_id)
                self._check_trading(pool, caller)

                balance = self._store.get_balance(pool_id, caller)
                held = balance.yes if side == Side.YES else balance.no
                if held < amount:
                    raise InsufficientSharesError(side.value, amount, held)

                gross = self._engine.revenue_from_sell(
                    pool.n_yes, pool.n_no, pool.b, side, amount
                )
                if gross <= 0:
                    raise InvalidAmountError("trade too small: revenue rounds to zero")
                if gross > pool.collateral:
                    raise InsufficientCollateralError(gross, pool.collateral)
                fee = calc_fee(gross, self._config.total_fee_bps)
                refund = gross - fee
                split = self._split(fee, referrer)

                delta = self._engine.to_fixed(amount)
                pool.collateral -= gross
                if side == Side.YES:
                    pool.n_yes -= delta
                    pool.total_supply_yes -= amount
                    balance.yes -= amount
                else:
                    pool.n_no -= delta
                    pool.total_supply_no -= amount
                    balance.no -= amount
                self._credit_split(split)
                self._verify(pool)

                if refund > 0:
                    await self._token.transfer(self.address, caller, refund)

        quote = TradeQuote(
            pool_id=pool_id,
            side=side.value,
            direction=TradeDirection.SELL.value,
            amount=amount,
            gross=gross,
            fee=fee,
            total=refund,
        )
        logger.info(
            "Sell %s: pool=%d, trader=%s, amount=%d, revenue=%d, fee=%d",
            side.value, pool_id, caller, amount, gross, fee,
        )
        self._publish_trade(quote, caller, split)
        return quote

    def _check_trading(self, pool: Pool, caller: str) -> None:
        if pool.is_resolved:
            raise PoolAlreadyResolvedError(pool.id)
        if pool.is_awaiting_resolution:
            raise ResolutionPendingError(pool.id)
        if self._clock() >= pool.closing_time:
            raise TradingClosedError(pool.id)
        if self._store.is_blocked(pool.id, caller):
            raise TradingBlockedError(caller)

    def _split(self, fee: int, referrer: str | None) -> FeeSplit:
        return split_fee(
            fee,
            referrer,
            self._config.fee_reserve,
            self._config.total_fee_bps,
            self._config.referrer_fee_bps,
        )

    def _credit_split(self, split: FeeSplit) -> None:
        if split.referrer_address is not None:
            self._store.credit_fee(split.referrer_address, split.referrer)
        self._store.credit_fee(self._config.fee_reserve, split.reserve)

    def _publish_trade(self, quote: TradeQuote, trader: str, split: FeeSplit) -> None:
        self._event_bus.publish(
            TradeExecuted(
                pool_id=quote.pool_id,
                trader=trader,
                side=quote.side,
                direction=quote.direction,
                amount=quote.amount,
                value=quote.gross,
                fee=quote.fee,
                referrer_fee=split.referrer,
                reserve_fee=split.reserve,
            )
        )

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def resolve(self, caller: str, pool_id: int, value: int) -> str:
        """Ask the oracle to settle the pool. Returns the oracle request id.

        value is the callback gas payment forwarded to the gateway. The pending
        marker is set under the market lock; the submission itself runs after the
        lock is released so trading on other pools is not held up by the provider.
        A failed submission clears the marker again.
        """
        if self._resolver is None:
            raise InvalidPoolParamsError("no oracle resolver configured")
        async with self._lock:
            async with self._store.transaction():
                pool = self._get_pool(pool_id)
                if pool.is_resolved:
                    raise PoolAlreadyResolvedError(pool_id)
                now = self._clock()
                if now < pool.resolution_time:
                    raise NotYetResolutionTimeError(pool_id)
                if pool.is_awaiting_resolution:
                    raise ResolutionPendingError(pool_id)
                pool.resolution_requested_at = now
                prompt = pool.resolution_prompt

        try:
            request_id = await self._resolver.resolve(
                self.address, pool_id, prompt, self.coordinator, value
            )
        except Exception:
            await self._clear_pending(pool_id, now)
            raise

        logger.info(
            "Pool %d resolution requested by %s: request_id=%s",
            pool_id, caller.lower(), request_id,
        )
        self._event_bus.publish(PoolResolving(pool_id=pool_id))
        return request_id

    async def _clear_pending(self, pool_id: int, requested_at: datetime) -> None:
        async with self._lock:
            async with self._store.transaction():
                pool = self._get_pool(pool_id)
                if not pool.is_resolved and pool.resolution_requested_at == requested_at:
                    pool.resolution_requested_at = None
        logger.warning("Pool %d: oracle submission failed, pending marker cleared", pool_id)

    async def force_resolve(
        self, caller: str, pool_id: int, resolution: Resolution
    ) -> Pool:
        """Operator fallback for a pool whose oracle request never completed."""
        if caller.lower() != self._config.owner:
            raise UnauthorizedCallerError("Only the market owner can force a resolution")
        resolution = Resolution(resolution)
        if resolution == Resolution.UNRESOLVED:
            raise InvalidPoolParamsError("forced resolution must be YES, NO or INCONCLUSIVE")

        async with self._lock:
            async with self._store.transaction():
                pool = self._get_pool(pool_id)
                if pool.is_resolved:
                    raise PoolAlreadyResolvedError(pool_id)
                now = self._clock()
                if now < pool.resolution_time + self._config.resolution_grace_period:
                    raise GracePeriodNotElapsedError(pool_id)
                settle_pool(pool, resolution, now)
            resolved = copy.copy(pool)

        logger.warning("Pool %d force-resolved by owner: %s", pool_id, resolution.value)
        self._event_bus.publish(
            PoolResolved(pool_id=pool_id, resolution=resolution.value, forced=True)
        )
        return resolved

    # ------------------------------------------------------------------
    # Withdrawals
    # ------------------------------------------------------------------

    async def withdraw(self, caller: str, pool_id: int) -> int:
        """Pay out the caller's pro-rata share of a resolved pool. Returns the amount."""
        caller = caller.lower()
        async with self._lock:
            async with self._store.transaction():
                pool = self._get_pool(pool_id)
                if not pool.is_resolved:
                    raise PoolNotResolvedError(pool_id)
                balance = self._store.get_balance(pool_id, caller)
                payout = compute_payout(pool, balance)
                if payout <= 0:
                    raise NoFundsToWithdrawError()

                pool.total_supply_yes -= balance.yes
                pool.total_supply_no -= balance.no
                pool.n_yes = self._engine.to_fixed(pool.total_supply_yes)
                pool.n_no = self._engine.to_fixed(pool.total_supply_no)
                pool.collateral -= payout
                balance.yes = 0
                balance.no = 0
                self._verify(pool)

                await self._token.transfer(self.address, caller, payout)

        logger.info("Withdraw: pool=%d, holder=%s, amount=%d", pool_id, caller, payout)
        self._event_bus.publish(Withdrawn(pool_id=pool_id, holder=caller, amount=payout))
        return payout

    async def withdraw_fees(self, caller: str) -> int:
        caller = caller.lower()
        async with self._lock:
            async with self._store.transaction():
                amount = self._store.clear_fees(caller)
                if amount <= 0:
                    raise NoFeesToWithdrawError()
                await self._token.transfer(self.address, caller, amount)

        logger.info("Fees withdrawn: recipient=%s, amount=%d", caller, amount)
        self._event_bus.publish(FeesWithdrawn(recipient=caller, amount=amount))
        return amount

    # ------------------------------------------------------------------
    # Read views
    # ------------------------------------------------------------------

    def _get_pool(self, pool_id: int) -> Pool:
        pool = self._store.get_pool(pool_id)
        if pool is None:
            raise PoolNotFoundError(pool_id)
        return pool

    def _verify(self, pool: Pool) -> None:
        verify_pool_invariants(
            pool, self._store.list_balances(pool.id), self._engine.scale_factor
        )

    def get_pool(self, pool_id: int) -> Pool:
        return copy.copy(self._get_pool(pool_id))

    def pool_count(self) -> int:
        return self._store.pool_count()

    def yes_balance(self, pool_id: int, address: str) -> int:
        self._get_pool(pool_id)
        return self._store.peek_balance(pool_id, address).yes

    def no_balance(self, pool_id: int, address: str) -> int:
        self._get_pool(pool_id)
        return self._store.peek_balance(pool_id, address).no

    def is_blocked_from_trading(self, pool_id: int, address: str) -> bool:
        return self._store.is_blocked(pool_id, address)

    def withdrawable_fees(self, address: str) -> int:
        return self._store.fee_balance(address)

    def withdrawable_amount(self, pool_id: int, address: str) -> int:
        pool = self._get_pool(pool_id)
        return compute_payout(pool, self._store.peek_balance(pool_id, address))

    def cost_to_buy_yes(self, pool_id: int, amount: int) -> int:
        return self._cost_to_buy(pool_id, Side.YES, amount)

    def cost_to_buy_no(self, pool_id: int, amount: int) -> int:
        return self._cost_to_buy(pool_id, Side.NO, amount)

    def revenue_from_sell_yes(self, pool_id: int, amount: int) -> int:
        return self._revenue_from_sell(pool_id, Side.YES, amount)

    def revenue_from_sell_no(self, pool_id: int, amount: int) -> int:
        return self._revenue_from_sell(pool_id, Side.NO, amount)

    def _cost_to_buy(self, pool_id: int, side: Side, amount: int) -> int:
        pool = self._get_pool(pool_id)
        return self._engine.cost_to_buy(pool.n_yes, pool.n_no, pool.b, side, amount)

    def _revenue_from_sell(self, pool_id: int, side: Side, amount: int) -> int:
        pool = self._get_pool(pool_id)
        return self._engine.revenue_from_sell(pool.n_yes, pool.n_no, pool.b, side, amount)

    def quote(
        self, pool_id: int, side: Side, direction: TradeDirection, amount: int
    ) -> TradeQuote:
        """Price a trade without executing it, fee included."""
        if direction == TradeDirection.BUY:
            gross = self._cost_to_buy(pool_id, side, amount)
            fee = calc_fee(gross, self._config.total_fee_bps)
            total = gross + fee
        else:
            gross = self._revenue_from_sell(pool_id, side, amount)
            fee = calc_fee(gross, self._config.total_fee_bps)
            total = gross - fee
        return TradeQuote(
            pool_id=pool_id,
            side=Side(side).value,
            direction=TradeDirection(direction).value,
            amount=amount,
            gross=gross,
            fee=fee,
            total=total,
        )

    def prices(self, pool_id: int) -> dict[str, Any]:
        """Spot prices of both sides, 18-decimal fixed point."""
        pool = self._get_pool(pool_id)
        return {
            "yes": self._engine.price(pool.n_yes, pool.n_no, pool.b, Side.YES),
            "no": self._engine.price(pool.n_yes, pool.n_no, pool.b, Side.NO),
        }
