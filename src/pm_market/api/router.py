"""pm_market REST endpoints.

POST /pools                               — create a pool (create_bet)
GET  /pools/count                         — number of pools
GET  /pools/{pool_id}                     — pool detail with spot prices
GET  /pools/{pool_id}/quote               — price a trade without executing it
POST /pools/{pool_id}/buy                 — buy YES/NO shares
POST /pools/{pool_id}/sell                — sell YES/NO shares
POST /pools/{pool_id}/resolve             — request oracle resolution
POST /pools/{pool_id}/force-resolve       — owner fallback after the grace period
POST /pools/{pool_id}/withdraw            — collect payout after resolution
GET  /pools/{pool_id}/balances/{address}  — holder balances and withdrawable amount

The caller address is the subject of the JWT Bearer token; force-resolve also
requires the OWNER role.
"""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Request

from src.pm_common.enums import Resolution, Side, TradeDirection
from src.pm_common.response import ApiResponse, respond
from src.pm_gateway.auth.dependencies import get_caller, require_owner
from src.pm_gateway.runtime import Runtime, get_runtime
from src.pm_market.application.schemas import (
    CreateBetRequest,
    ForceResolveRequest,
    HolderBalanceResponse,
    PoolResponse,
    ResolveRequest,
    ResolveResponse,
    TradeQuoteResponse,
    TradeRequest,
    WithdrawResponse,
)

router = APIRouter(prefix="/pools", tags=["pools"])


@router.post("", status_code=201)
async def create_bet(
    req: CreateBetRequest,
    request: Request,
    caller: Annotated[str, Depends(get_caller)],
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> ApiResponse:
    pool = await runtime.market.create_bet(
        caller,
        title=req.title,
        resolution_prompt=req.resolution_prompt,
        initial_liquidity=req.initial_liquidity,
        closing_time=req.closing_time,
        resolution_time=req.resolution_time,
        liquidity_parameter=req.liquidity_parameter,
        discussion_url=req.discussion_url,
        tags=req.tags,
        logo_url=req.logo_url,
    )
    prices = runtime.market.prices(pool.id)
    return respond(request, PoolResponse.from_domain(pool, prices).model_dump(mode="json"))


@router.get("/count")
async def pool_count(
    request: Request,
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> ApiResponse:
    return respond(request, {"count": runtime.market.pool_count()})


@router.get("/{pool_id}")
async def get_pool(
    pool_id: int,
    request: Request,
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> ApiResponse:
    pool = runtime.market.get_pool(pool_id)
    prices = runtime.market.prices(pool_id)
    return respond(request, PoolResponse.from_domain(pool, prices).model_dump(mode="json"))


@router.get("/{pool_id}/quote")
async def quote(
    pool_id: int,
    request: Request,
    runtime: Annotated[Runtime, Depends(get_runtime)],
    side: Literal["YES", "NO"] = Query(...),
    direction: Literal["BUY", "SELL"] = Query("BUY"),
    amount: int = Query(..., gt=0),
) -> ApiResponse:
    result = runtime.market.quote(pool_id, Side(side), TradeDirection(direction), amount)
    return respond(request, TradeQuoteResponse.from_domain(result).model_dump())


@router.post("/{pool_id}/buy")
async def buy(
    pool_id: int,
    req: TradeRequest,
    request: Request,
    caller: Annotated[str, Depends(get_caller)],
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> ApiResponse:
    if req.side == Side.YES.value:
        result = await runtime.market.buy_yes(caller, pool_id, req.amount, req.referrer)
    else:
        result = await runtime.market.buy_no(caller, pool_id, req.amount, req.referrer)
    return respond(request, TradeQuoteResponse.from_domain(result).model_dump())


@router.post("/{pool_id}/sell")
async def sell(
    pool_id: int,
    req: TradeRequest,
    request: Request,
    caller: Annotated[str, Depends(get_caller)],
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> ApiResponse:
    if req.side == Side.YES.value:
        result = await runtime.market.sell_yes(caller, pool_id, req.amount, req.referrer)
    else:
        result = await runtime.market.sell_no(caller, pool_id, req.amount, req.referrer)
    return respond(request, TradeQuoteResponse.from_domain(result).model_dump())


@router.post("/{pool_id}/resolve", status_code=202)
async def resolve(
    pool_id: int,
    req: ResolveRequest,
    request: Request,
    caller: Annotated[str, Depends(get_caller)],
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> ApiResponse:
    request_id = await runtime.market.resolve(caller, pool_id, req.value)
    return respond(request, ResolveResponse(pool_id=pool_id, request_id=request_id).model_dump())


@router.post("/{pool_id}/force-resolve")
async def force_resolve(
    pool_id: int,
    req: ForceResolveRequest,
    request: Request,
    caller: Annotated[str, Depends(require_owner)],
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> ApiResponse:
    pool = await runtime.market.force_resolve(caller, pool_id, Resolution(req.resolution))
    return respond(request, PoolResponse.from_domain(pool).model_dump(mode="json"))


@router.post("/{pool_id}/withdraw")
async def withdraw(
    pool_id: int,
    request: Request,
    caller: Annotated[str, Depends(get_caller)],
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> ApiResponse:
    amount = await runtime.market.withdraw(caller, pool_id)
    return respond(
        request, WithdrawResponse(pool_id=pool_id, recipient=caller, amount=amount).model_dump()
    )


@router.get("/{pool_id}/balances/{address}")
async def holder_balance(
    pool_id: int,
    address: str,
    request: Request,
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> ApiResponse:
    market = runtime.market
    result = HolderBalanceResponse(
        pool_id=pool_id,
        address=address.lower(),
        yes=market.yes_balance(pool_id, address),
        no=market.no_balance(pool_id, address),
        withdrawable=market.withdrawable_amount(pool_id, address),
        blocked_from_trading=market.is_blocked_from_trading(pool_id, address),
    )
    return respond(request, result.model_dump())
