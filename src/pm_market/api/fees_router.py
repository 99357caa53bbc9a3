"""Fee ledger endpoints.

GET  /fees/{address}   — withdrawable trading fees
POST /fees/withdraw    — pay out the caller's fee balance
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.pm_common.response import ApiResponse, respond
from src.pm_gateway.auth.dependencies import get_caller
from src.pm_gateway.runtime import Runtime, get_runtime
from src.pm_market.application.schemas import FeeBalanceResponse, WithdrawResponse

router = APIRouter(prefix="/fees", tags=["fees"])


@router.get("/{address}")
async def fee_balance(
    address: str,
    request: Request,
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> ApiResponse:
    result = FeeBalanceResponse(
        address=address.lower(),
        withdrawable=runtime.market.withdrawable_fees(address),
    )
    return respond(request, result.model_dump())


@router.post("/withdraw")
async def withdraw_fees(
    request: Request,
    caller: Annotated[str, Depends(get_caller)],
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> ApiResponse:
    amount = await runtime.market.withdraw_fees(caller)
    return respond(request, WithdrawResponse(recipient=caller, amount=amount).model_dump())
