"""Market notifications, published on the EventBus after each operation commits."""

from dataclasses import dataclass


@dataclass
class BetCreated:
    pool_id: int
    creator: str
    title: str
    initial_liquidity: int
    closing_time: str


@dataclass
class TradeExecuted:
    pool_id: int
    trader: str
    side: str        # YES / NO
    direction: str   # BUY / SELL
    amount: int      # shares
    value: int       # net cost (buy) or gross revenue (sell)
    fee: int
    referrer_fee: int
    reserve_fee: int


@dataclass
class PoolResolving:
    pool_id: int


@dataclass
class PoolResolved:
    pool_id: int
    resolution: str
    forced: bool = False


@dataclass
class Withdrawn:
    pool_id: int
    holder: str
    amount: int


@dataclass
class FeesWithdrawn:
    recipient: str
    amount: int
