# tests/unit/test_market_service.py
"""Unit tests for Market: pool creation, trading, fees and withdrawals."""
import asyncio
from datetime import timedelta

import pytest

from src.pm_common.enums import OracleOutcome, Resolution, Side, TradeDirection
from src.pm_common.errors import (
    GracePeriodNotElapsedError,
    InsufficientAllowanceError,
    InsufficientSharesError,
    InvalidAmountError,
    InvalidPoolParamsError,
    NoFeesToWithdrawError,
    NoFundsToWithdrawError,
    PoolAlreadyResolvedError,
    PoolNotFoundError,
    PoolNotResolvedError,
    ResolutionPendingError,
    TradingBlockedError,
    TradingClosedError,
    UnauthorizedCallerError,
)
from src.pm_market.domain.events import BetCreated, PoolResolved, TradeExecuted, Withdrawn
from src.pm_market.domain.fee import calc_fee

USDC = 10**6


class TestCreateBet:
    async def test_twenty_token_pool_mints_ten_point_two_each_side(
        self, market, make_pool, token, addrs
    ):
        pool = await make_pool(liquidity=20 * USDC)

        assert pool.id == 1
        assert pool.total_supply_yes == 10_200_000
        assert pool.total_supply_no == 10_200_000
        assert pool.collateral == 20 * USDC
        assert market.yes_balance(1, addrs.creator) == 10_200_000
        assert market.no_balance(1, addrs.creator) == 10_200_000
        assert await token.balance_of(addrs.market) == 20 * USDC
        assert await token.balance_of(addrs.creator) == 0

    async def test_creator_is_blocked_from_trading(self, market, make_pool, addrs):
        await make_pool()
        assert market.is_blocked_from_trading(1, addrs.creator) is True
        assert market.is_blocked_from_trading(1, addrs.alice) is False

    async def test_default_liquidity_parameter_is_one_twentieth(self, market, make_pool):
        pool = await make_pool(liquidity=20 * USDC)
        # b = 1 whole token in 18-decimal fixed point
        assert pool.b == 10**18

    async def test_explicit_liquidity_parameter(self, make_pool):
        pool = await make_pool(liquidity=20 * USDC, liquidity_parameter=5 * USDC)
        assert pool.b == 5 * 10**18

    async def test_metadata_is_kept(self, make_pool):
        pool = await make_pool(
            discussion_url="https://forum.example/t/1", tags="weather,lisbon", logo_url="x.png"
        )
        assert pool.tags == "weather,lisbon"
        assert pool.discussion_url == "https://forum.example/t/1"

    async def test_ids_are_sequential(self, market, make_pool):
        first = await make_pool()
        second = await make_pool()
        assert (first.id, second.id) == (1, 2)
        assert market.pool_count() == 2

    async def test_emits_bet_created(self, make_pool, events, addrs):
        await make_pool()
        created = [e for e in events if isinstance(e, BetCreated)]
        assert len(created) == 1
        assert created[0].creator == addrs.creator

    async def test_rejects_closing_time_in_past(self, make_pool, clock):
        with pytest.raises(InvalidPoolParamsError):
            await make_pool(closing_time=clock.now - timedelta(seconds=1))

    async def test_rejects_resolution_before_closing(self, make_pool, clock):
        with pytest.raises(InvalidPoolParamsError):
            await make_pool(
                closing_time=clock.now + timedelta(days=2),
                resolution_time=clock.now + timedelta(days=1),
            )

    async def test_rejects_zero_liquidity(self, market, clock, addrs):
        with pytest.raises(InvalidPoolParamsError):
            await market.create_bet(
                addrs.creator, "title", "prompt", 0,
                clock.now + timedelta(days=1), clock.now + timedelta(days=2),
            )

    async def test_rejects_empty_title(self, make_pool):
        with pytest.raises(InvalidPoolParamsError):
            await make_pool(title="   ")

    async def test_rejects_oversized_prompt(self, make_pool):
        with pytest.raises(InvalidPoolParamsError):
            await make_pool(resolution_prompt="x" * 1025)

    async def test_rejects_oversized_metadata(self, make_pool):
        with pytest.raises(InvalidPoolParamsError):
            await make_pool(tags="t" * 513)

    async def test_failed_pull_leaves_no_pool(self, market, clock, addrs, make_pool):
        # creator has no allowance
        with pytest.raises(InsufficientAllowanceError):
            await market.create_bet(
                addrs.creator, "title", "prompt", 20 * USDC,
                clock.now + timedelta(days=1), clock.now + timedelta(days=2),
            )
        assert market.pool_count() == 0
        pool = await make_pool()
        assert pool.id == 1


class TestBuy:
    async def test_buy_yes_updates_ledger_and_pulls_cost_plus_fee(
        self, market, make_pool, fund, token, addrs
    ):
        await make_pool()
        await fund(addrs.alice, 1000 * USDC)
        expected_cost = market.cost_to_buy_yes(1, 5 * USDC)

        result = await market.buy_yes(addrs.alice, 1, 5 * USDC)

        assert result.gross == expected_cost
        assert result.fee == calc_fee(expected_cost, 20)
        assert result.total == expected_cost + result.fee
        pool = market.get_pool(1)
        assert pool.total_supply_yes == 10_200_000 + 5 * USDC
        assert pool.collateral == 20 * USDC + expected_cost
        assert market.yes_balance(1, addrs.alice) == 5 * USDC
        assert await token.balance_of(addrs.alice) == 1000 * USDC - result.total
        assert market.withdrawable_fees(addrs.reserve) == result.fee

    async def test_price_rises_with_each_purchase(self, market, make_pool, fund, addrs):
        await make_pool()
        await fund(addrs.alice, 1000 * USDC)
        first = await market.buy_no(addrs.alice, 1, USDC)
        second = await market.buy_no(addrs.alice, 1, USDC)
        assert second.gross > first.gross

    async def test_referrer_gets_half_the_fee(self, market, make_pool, fund, addrs):
        await make_pool()
        await fund(addrs.alice, 1000 * USDC)

        result = await market.buy_yes(addrs.alice, 1, 10 * USDC, referrer=addrs.referrer)

        referrer_fee = result.fee * 10 // 20
        assert market.withdrawable_fees(addrs.referrer) == referrer_fee
        assert market.withdrawable_fees(addrs.reserve) == result.fee - referrer_fee

    async def test_emits_trade_executed(self, market, make_pool, fund, addrs, events):
        await make_pool()
        await fund(addrs.alice, 1000 * USDC)
        await market.buy_yes(addrs.alice, 1, USDC)
        trades = [e for e in events if isinstance(e, TradeExecuted)]
        assert len(trades) == 1
        assert trades[0].direction == TradeDirection.BUY.value
        assert trades[0].referrer_fee + trades[0].reserve_fee == trades[0].fee

    async def test_creator_cannot_trade(self, market, make_pool, fund, addrs):
        await make_pool()
        await fund(addrs.creator, 100 * USDC)
        with pytest.raises(TradingBlockedError):
            await market.buy_yes(addrs.creator, 1, USDC)

    async def test_trading_closed_after_closing_time(self, market, make_pool, fund, addrs, clock):
        await make_pool()
        await fund(addrs.alice, 100 * USDC)
        clock.advance(days=1)
        with pytest.raises(TradingClosedError):
            await market.buy_yes(addrs.alice, 1, USDC)

    async def test_unknown_pool(self, market, addrs):
        with pytest.raises(PoolNotFoundError):
            await market.buy_yes(addrs.alice, 99, USDC)

    async def test_rejects_non_positive_amount(self, market, make_pool, addrs):
        await make_pool()
        with pytest.raises(InvalidAmountError):
            await market.buy_no(addrs.alice, 1, 0)

    async def test_rejects_trade_that_rounds_to_zero(self, market, make_pool, fund, addrs):
        await make_pool()
        await fund(addrs.alice, 100 * USDC)
        # one unit of a share costs well under one token unit
        with pytest.raises(InvalidAmountError):
            await market.buy_yes(addrs.alice, 1, 1)

    async def test_failed_payment_rolls_back(self, market, make_pool, token, addrs):
        await make_pool()
        await token.mint(addrs.alice, 1000 * USDC)  # no allowance

        with pytest.raises(InsufficientAllowanceError):
            await market.buy_yes(addrs.alice, 1, 5 * USDC)

        pool = market.get_pool(1)
        assert pool.total_supply_yes == 10_200_000
        assert pool.collateral == 20 * USDC
        assert market.yes_balance(1, addrs.alice) == 0
        assert market.withdrawable_fees(addrs.reserve) == 0


class TestSell:
    async def test_buy_then_sell_round_trip(self, market, make_pool, fund, token, addrs):
        await make_pool()
        await fund(addrs.alice, 1000 * USDC)
        before = market.get_pool(1)

        bought = await market.buy_no(addrs.alice, 1, 100 * USDC)
        sold = await market.sell_no(addrs.alice, 1, 100 * USDC)

        after = market.get_pool(1)
        assert after.total_supply_yes == before.total_supply_yes
        assert after.total_supply_no == before.total_supply_no
        assert (after.n_yes, after.n_no) == (before.n_yes, before.n_no)
        assert after.collateral == before.collateral
        assert sold.gross == bought.gross
        fees = market.withdrawable_fees(addrs.reserve)
        assert fees == bought.fee + sold.fee
        assert fees > 0
        assert await token.balance_of(addrs.alice) == 1000 * USDC - fees

    async def test_sell_refund_is_gross_minus_fee(self, market, make_pool, fund, addrs):
        await make_pool()
        await fund(addrs.alice, 1000 * USDC)
        await market.buy_yes(addrs.alice, 1, 10 * USDC)
        expected_gross = market.revenue_from_sell_yes(1, 4 * USDC)

        result = await market.sell_yes(addrs.alice, 1, 4 * USDC)

        assert result.gross == expected_gross
        assert result.fee == calc_fee(expected_gross, 20)
        assert result.total == expected_gross - result.fee
        assert market.yes_balance(1, addrs.alice) == 6 * USDC

    async def test_cannot_sell_more_than_held(self, market, make_pool, fund, addrs):
        await make_pool()
        await fund(addrs.alice, 1000 * USDC)
        await market.buy_yes(addrs.alice, 1, USDC)
        with pytest.raises(InsufficientSharesError):
            await market.sell_yes(addrs.alice, 1, 2 * USDC)

    async def test_sell_closed_after_closing_time(self, market, make_pool, fund, addrs, clock):
        await make_pool()
        await fund(addrs.alice, 1000 * USDC)
        await market.buy_yes(addrs.alice, 1, USDC)
        clock.advance(days=1, seconds=1)
        with pytest.raises(TradingClosedError):
            await market.sell_yes(addrs.alice, 1, USDC)

    async def test_quote_matches_execution(self, market, make_pool, fund, addrs):
        await make_pool()
        await fund(addrs.alice, 1000 * USDC)
        quote = market.quote(1, Side.NO, TradeDirection.BUY, 3 * USDC)
        result = await market.buy_no(addrs.alice, 1, 3 * USDC)
        assert (quote.gross, quote.fee, quote.total) == (result.gross, result.fee, result.total)


class TestWithdraw:
    async def _two_holders(self, market, make_pool, fund, addrs):
        await make_pool()
        await fund(addrs.alice, 1000 * USDC)
        await fund(addrs.bob, 1000 * USDC)
        await market.buy_yes(addrs.alice, 1, 30 * USDC)
        await market.buy_no(addrs.bob, 1, 10 * USDC)

    async def test_unresolved_pool_rejects_withdraw(self, market, make_pool, addrs):
        await make_pool()
        with pytest.raises(PoolNotResolvedError):
            await market.withdraw(addrs.creator, 1)

    async def test_yes_resolution_pays_yes_holder_only(
        self, market, make_pool, fund, token, addrs, events
    ):
        await self._two_holders(market, make_pool, fund, addrs)
        await market.coordinator.on_pool_resolve(addrs.oracle, 1, OracleOutcome.TRUE)
        pool = market.get_pool(1)
        expected = pool.collateral * (30 * USDC) // pool.total_supply_yes

        assert market.withdrawable_amount(1, addrs.alice) == expected
        assert market.withdrawable_amount(1, addrs.bob) == 0

        before = await token.balance_of(addrs.alice)
        paid = await market.withdraw(addrs.alice, 1)
        assert paid == expected
        assert await token.balance_of(addrs.alice) == before + expected
        assert market.yes_balance(1, addrs.alice) == 0
        assert any(isinstance(e, Withdrawn) for e in events)

        with pytest.raises(NoFundsToWithdrawError):
            await market.withdraw(addrs.bob, 1)

    async def test_second_withdraw_rejected(self, market, make_pool, fund, addrs):
        await self._two_holders(market, make_pool, fund, addrs)
        await market.coordinator.on_pool_resolve(addrs.oracle, 1, OracleOutcome.TRUE)
        await market.withdraw(addrs.alice, 1)
        with pytest.raises(NoFundsToWithdrawError):
            await market.withdraw(addrs.alice, 1)

    async def test_all_winners_withdraw_within_collateral(
        self, market, make_pool, fund, token, addrs
    ):
        await self._two_holders(market, make_pool, fund, addrs)
        await market.coordinator.on_pool_resolve(addrs.oracle, 1, OracleOutcome.FALSE)
        collateral = market.get_pool(1).collateral

        paid = await market.withdraw(addrs.bob, 1)
        paid += await market.withdraw(addrs.creator, 1)

        pool = market.get_pool(1)
        assert paid <= collateral
        assert pool.collateral == collateral - paid
        assert pool.total_supply_no == 0
        assert pool.collateral >= 0

    async def test_inconclusive_pays_both_sides(self, market, make_pool, fund, addrs):
        await self._two_holders(market, make_pool, fund, addrs)
        await market.coordinator.on_pool_resolve(addrs.oracle, 1, OracleOutcome.INCONCLUSIVE)
        assert market.withdrawable_amount(1, addrs.alice) > 0
        assert market.withdrawable_amount(1, addrs.bob) > 0
        assert market.withdrawable_amount(1, addrs.creator) > 0


class TestWithdrawFees:
    async def test_reserve_collects_fees(self, market, make_pool, fund, token, addrs, events):
        await make_pool()
        await fund(addrs.alice, 1000 * USDC)
        result = await market.buy_yes(addrs.alice, 1, 10 * USDC)

        amount = await market.withdraw_fees(addrs.reserve)

        assert amount == result.fee
        assert await token.balance_of(addrs.reserve) == result.fee
        assert market.withdrawable_fees(addrs.reserve) == 0

    async def test_nothing_to_withdraw(self, market, addrs):
        with pytest.raises(NoFeesToWithdrawError):
            await market.withdraw_fees(addrs.alice)


class TestForceResolve:
    async def test_only_owner(self, market, make_pool, addrs, clock):
        await make_pool()
        clock.advance(days=30)
        with pytest.raises(UnauthorizedCallerError):
            await market.force_resolve(addrs.alice, 1, Resolution.YES)

    async def test_requires_grace_period(self, market, make_pool, addrs, clock):
        await make_pool()
        clock.advance(days=3)
        with pytest.raises(GracePeriodNotElapsedError):
            await market.force_resolve(addrs.owner, 1, Resolution.YES)

    async def test_resolves_after_grace_period(self, market, make_pool, addrs, clock, events):
        await make_pool()
        clock.advance(days=9)

        pool = await market.force_resolve(addrs.owner, 1, Resolution.NO)

        assert pool.resolution == Resolution.NO
        resolved = [e for e in events if isinstance(e, PoolResolved)]
        assert resolved[-1].forced is True

    async def test_cannot_force_unresolved(self, market, make_pool, addrs, clock):
        await make_pool()
        clock.advance(days=9)
        with pytest.raises(InvalidPoolParamsError):
            await market.force_resolve(addrs.owner, 1, Resolution.UNRESOLVED)

    async def test_cannot_override_resolution(self, market, make_pool, addrs, clock):
        await make_pool()
        await market.coordinator.on_pool_resolve(addrs.oracle, 1, OracleOutcome.TRUE)
        clock.advance(days=9)
        with pytest.raises(PoolAlreadyResolvedError):
            await market.force_resolve(addrs.owner, 1, Resolution.NO)
        assert market.get_pool(1).resolution == Resolution.YES


class TestViews:
    async def test_views_on_missing_pool(self, market, addrs):
        with pytest.raises(PoolNotFoundError):
            market.yes_balance(7, addrs.alice)
        with pytest.raises(PoolNotFoundError):
            market.withdrawable_amount(7, addrs.alice)

    async def test_get_pool_returns_copy(self, market, make_pool):
        await make_pool()
        snapshot = market.get_pool(1)
        snapshot.collateral = 0
        assert market.get_pool(1).collateral == 20 * USDC

    async def test_prices_start_even(self, market, make_pool):
        await make_pool()
        prices = market.prices(1)
        assert prices["yes"] == prices["no"] == 5 * 10**17


class _StalledResolver:
    """Resolver whose submission waits until the test releases it."""

    def __init__(self, error: Exception | None = None) -> None:
        self.entered = asyncio.Event()
        self.release = asyncio.Event()
        self.error = error

    async def resolve(self, caller, bet_id, prompt, callback, value) -> str:
        self.entered.set()
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return f"req-{bet_id}"


class TestResolveSubmission:
    @pytest.fixture
    async def two_pools(self, make_pool, clock):
        await make_pool()
        await make_pool(
            closing_time=clock.now + timedelta(days=5),
            resolution_time=clock.now + timedelta(days=6),
        )
        clock.advance(days=2)

    async def test_trading_continues_while_submission_is_in_flight(
        self, market, two_pools, fund, addrs
    ):
        resolver = _StalledResolver()
        market.set_resolver(resolver)
        await fund(addrs.alice, 1000 * USDC)

        resolving = asyncio.create_task(market.resolve(addrs.bob, 1, 500_000))
        await resolver.entered.wait()

        assert market.get_pool(1).is_awaiting_resolution
        trade = await asyncio.wait_for(market.buy_yes(addrs.alice, 2, USDC), timeout=1)
        assert trade.gross > 0
        with pytest.raises(ResolutionPendingError):
            await market.resolve(addrs.bob, 1, 500_000)

        resolver.release.set()
        assert await resolving == "req-1"
        assert market.get_pool(1).is_awaiting_resolution

    async def test_failed_submission_clears_pending_marker(self, market, two_pools, addrs):
        resolver = _StalledResolver(error=RuntimeError("provider down"))
        resolver.release.set()
        market.set_resolver(resolver)

        with pytest.raises(RuntimeError):
            await market.resolve(addrs.bob, 1, 500_000)

        pool = market.get_pool(1)
        assert not pool.is_awaiting_resolution
        assert pool.resolution_requested_at is None
