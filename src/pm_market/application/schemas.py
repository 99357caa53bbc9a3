"""Pydantic schemas for pm_market API requests and responses.

Amounts are integer token units. Prices are 18-decimal fixed point, also
rendered as display strings.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from src.pm_common.datetime_utils import ensure_utc
from src.pm_common.fixed_point import to_display
from src.pm_market.domain.models import Pool, TradeQuote

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateBetRequest(BaseModel):
    title: str
    resolution_prompt: str
    initial_liquidity: int = Field(gt=0)
    closing_time: datetime
    resolution_time: datetime
    liquidity_parameter: int | None = Field(None, gt=0)
    discussion_url: str = ""
    tags: str = ""
    logo_url: str = ""

    @field_validator("closing_time", "resolution_time")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC."""
        return ensure_utc(v)


class TradeRequest(BaseModel):
    side: Literal["YES", "NO"]
    amount: int = Field(gt=0)
    referrer: str | None = None


class ResolveRequest(BaseModel):
    value: int = Field(ge=0, description="Callback gas payment forwarded to the oracle")


class ForceResolveRequest(BaseModel):
    resolution: Literal["YES", "NO", "INCONCLUSIVE"]


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class PoolResponse(BaseModel):
    id: int
    creator: str
    title: str
    resolution_prompt: str
    closing_time: datetime
    resolution_time: datetime
    liquidity_parameter: str
    total_supply_yes: int
    total_supply_no: int
    collateral: int
    resolution: str
    awaiting_resolution: bool
    resolved_at: datetime | None = None
    price_yes: str | None = None
    price_no: str | None = None
    discussion_url: str = ""
    tags: str = ""
    logo_url: str = ""
    created_at: datetime | None = None

    @classmethod
    def from_domain(
        cls, pool: Pool, prices: dict[str, int] | None = None
    ) -> "PoolResponse":
        return cls(
            id=pool.id,
            creator=pool.creator,
            title=pool.title,
            resolution_prompt=pool.resolution_prompt,
            closing_time=pool.closing_time,
            resolution_time=pool.resolution_time,
            liquidity_parameter=to_display(pool.b),
            total_supply_yes=pool.total_supply_yes,
            total_supply_no=pool.total_supply_no,
            collateral=pool.collateral,
            resolution=pool.resolution.value,
            awaiting_resolution=pool.is_awaiting_resolution,
            resolved_at=pool.resolved_at,
            price_yes=to_display(prices["yes"]) if prices else None,
            price_no=to_display(prices["no"]) if prices else None,
            discussion_url=pool.discussion_url,
            tags=pool.tags,
            logo_url=pool.logo_url,
            created_at=pool.created_at,
        )


class TradeQuoteResponse(BaseModel):
    pool_id: int
    side: str
    direction: str
    amount: int
    gross: int
    fee: int
    total: int

    @classmethod
    def from_domain(cls, quote: TradeQuote) -> "TradeQuoteResponse":
        return cls(
            pool_id=quote.pool_id,
            side=quote.side,
            direction=quote.direction,
            amount=quote.amount,
            gross=quote.gross,
            fee=quote.fee,
            total=quote.total,
        )


class HolderBalanceResponse(BaseModel):
    pool_id: int
    address: str
    yes: int
    no: int
    withdrawable: int
    blocked_from_trading: bool


class ResolveResponse(BaseModel):
    pool_id: int
    request_id: str


class WithdrawResponse(BaseModel):
    pool_id: int | None = None
    recipient: str
    amount: int


class FeeBalanceResponse(BaseModel):
    address: str
    withdrawable: int
