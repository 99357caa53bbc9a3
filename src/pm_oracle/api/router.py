"""pm_oracle REST endpoints.

POST /oracle/session/restart                      — owner: fund and open a new session
GET  /oracle/session                              — current session id
GET  /oracle/bets/{bet_id}                        — recorded outcome for a pool
GET  /oracle/requests/{request_id}                — request status
POST /oracle/callbacks/{request_id}/success       — provider webhook (shared secret)
POST /oracle/callbacks/{request_id}/failure       — provider webhook (shared secret)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.pm_common.enums import OracleOutcome
from src.pm_common.errors import BetNotFoundError, RequestNotFoundError
from src.pm_common.response import ApiResponse, respond
from src.pm_gateway.auth.dependencies import require_oracle_callback, require_owner
from src.pm_gateway.runtime import Runtime, get_runtime
from src.pm_oracle.application.schemas import (
    BetResponse,
    CallbackFailureRequest,
    CallbackResponse,
    RequestResponse,
    SessionResponse,
)

router = APIRouter(prefix="/oracle", tags=["oracle"])


@router.post("/session/restart")
async def restart_session(
    request: Request,
    caller: Annotated[str, Depends(require_owner)],
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> ApiResponse:
    session_id = await runtime.gateway.restart_session(caller)
    return respond(request, SessionResponse(session_id=session_id).model_dump())


@router.get("/session")
async def get_session(
    request: Request,
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> ApiResponse:
    return respond(request, SessionResponse(session_id=runtime.gateway.session_id).model_dump())


@router.get("/bets/{bet_id}")
async def get_bet(
    bet_id: int,
    request: Request,
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> ApiResponse:
    bet = runtime.gateway.get_bet(bet_id)
    if bet is None:
        raise BetNotFoundError(bet_id)
    return respond(request, BetResponse.from_domain(bet).model_dump())


@router.get("/requests/{request_id}")
async def get_request(
    request_id: str,
    request: Request,
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> ApiResponse:
    req = runtime.gateway.get_request(request_id)
    if req is None:
        raise RequestNotFoundError(request_id)
    return respond(request, RequestResponse.from_domain(req).model_dump(mode="json"))


@router.post(
    "/callbacks/{request_id}/success",
    dependencies=[Depends(require_oracle_callback)],
)
async def callback_success(
    request_id: str,
    request: Request,
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> ApiResponse:
    outcome = await runtime.gateway.callback_success(runtime.provider.address, request_id)
    return respond(
        request, CallbackResponse(request_id=request_id, outcome=outcome.value).model_dump()
    )


@router.post(
    "/callbacks/{request_id}/failure",
    dependencies=[Depends(require_oracle_callback)],
)
async def callback_failure(
    request_id: str,
    req: CallbackFailureRequest,
    request: Request,
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> ApiResponse:
    await runtime.gateway.callback_failure(runtime.provider.address, request_id, req.error)
    return respond(
        request,
        CallbackResponse(request_id=request_id, outcome=OracleOutcome.UNKNOWN.value).model_dump(),
    )
