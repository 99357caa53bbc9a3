"""Domain models for pm_market — pure dataclasses, no business logic."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from src.pm_common.enums import Resolution


@dataclass
class Pool:
    id: int
    creator: str
    title: str
    resolution_prompt: str
    closing_time: datetime
    resolution_time: datetime
    b: int                      # liquidity parameter, 18-decimal fixed point
    n_yes: int = 0              # fixed point, == total_supply_yes * scale_factor
    n_no: int = 0               # fixed point, == total_supply_no * scale_factor
    total_supply_yes: int = 0   # token units
    total_supply_no: int = 0    # token units
    collateral: int = 0         # token units held for this pool
    resolution: Resolution = Resolution.UNRESOLVED
    resolution_requested_at: datetime | None = None  # awaiting oracle callback
    resolved_at: datetime | None = None
    discussion_url: str = ""
    tags: str = ""
    logo_url: str = ""
    created_at: datetime | None = None

    @property
    def is_resolved(self) -> bool:
        return self.resolution != Resolution.UNRESOLVED

    @property
    def is_awaiting_resolution(self) -> bool:
        return not self.is_resolved and self.resolution_requested_at is not None


@dataclass
class HolderBalance:
    pool_id: int
    address: str
    yes: int = 0
    no: int = 0


@dataclass
class LedgerState:
    """Everything the market mutates. Balance rows are indexed by pool id."""

    pools: dict[int, Pool] = field(default_factory=dict)
    # pool_id -> address -> row
    balances: dict[int, dict[str, HolderBalance]] = field(default_factory=dict)
    blocked: dict[int, set[str]] = field(default_factory=dict)
    fees: dict[str, int] = field(default_factory=dict)
    next_pool_id: int = 1


@dataclass
class FeeSplit:
    total: int
    referrer: int
    reserve: int
    referrer_address: str | None


@dataclass
class TradeQuote:
    pool_id: int
    side: str
    direction: str
    amount: int
    gross: int       # net cost for a buy, gross revenue for a sell
    fee: int
    total: int       # paid by a buyer / received by a seller


@dataclass
class MarketConfig:
    """Static market parameters; see MarketConfig.from_settings for the defaults."""

    address: str
    owner: str
    fee_reserve: str
    oracle_address: str
    total_fee_bps: int = 20
    referrer_fee_bps: int = 10
    creator_bonus_percent: int = 2
    default_liquidity_parameter_bps: int = 500
    max_title_length: int = 200
    max_prompt_length: int = 1024
    max_metadata_length: int = 512
    resolution_grace_period: timedelta = timedelta(days=7)

    @classmethod
    def from_settings(cls, settings: Any) -> "MarketConfig":
        return cls(
            address=settings.MARKET_ADDRESS.lower(),
            owner=settings.MARKET_OWNER.lower(),
            fee_reserve=settings.FEE_RESERVE_ADDRESS.lower(),
            oracle_address=settings.ORACLE_ADDRESS.lower(),
            total_fee_bps=settings.TOTAL_FEE_BPS,
            referrer_fee_bps=settings.REFERRER_FEE_BPS,
            creator_bonus_percent=settings.CREATOR_BONUS_PERCENT,
            default_liquidity_parameter_bps=settings.DEFAULT_LIQUIDITY_PARAMETER_BPS,
            max_title_length=settings.MAX_TITLE_LENGTH,
            max_prompt_length=settings.MAX_PROMPT_LENGTH,
            max_metadata_length=settings.MAX_METADATA_LENGTH,
            resolution_grace_period=timedelta(
                seconds=settings.RESOLUTION_GRACE_PERIOD_SECONDS
            ),
        )
