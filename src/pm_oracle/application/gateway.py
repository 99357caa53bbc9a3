"""OracleGateway — submits resolution prompts to the inference provider and
routes the asynchronous answers back to the market.

The gateway lock covers its own records only. Market callbacks are awaited after
the lock is released, so a market holding its lock while calling resolve() can
never deadlock against a callback in flight.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import InferenceStatus, OracleOutcome, RequestStatus
from src.pm_common.errors import (
    BetAlreadyPendingError,
    EmptyPromptError,
    InsufficientGasError,
    InvalidAmountError,
    NoActiveSessionError,
    NoFeeTokensError,
    RequestAlreadyCompletedError,
    RequestNotFoundError,
    ResponseNotReadyError,
    UnauthorizedCallerError,
)
from src.pm_common.events import EventBus
from src.pm_market.domain.resolver import ResolutionCallbackProtocol
from src.pm_oracle.domain.events import (
    BetResolved,
    CallbackDeliveryFailed,
    ResolutionFailed,
    ResolveRequested,
    SessionRestarted,
)
from src.pm_oracle.domain.models import (
    BetRecord,
    InferenceRequest,
    OracleConfig,
    OracleFees,
    ResolutionRequest,
)
from src.pm_oracle.domain.outcome import parse_outcome
from src.pm_oracle.domain.provider import InferenceProviderProtocol
from src.pm_token.domain.token import CollateralTokenProtocol

logger = logging.getLogger(__name__)


class OracleGateway:
    def __init__(
        self,
        provider: InferenceProviderProtocol,
        fee_token: CollateralTokenProtocol,
        config: OracleConfig,
        event_bus: EventBus | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._provider = provider
        self._fee_token = fee_token
        self._config = config
        self._event_bus = event_bus or EventBus()
        self._clock = clock
        self._lock = asyncio.Lock()
        self._session_id: str | None = None
        self._requests: dict[str, ResolutionRequest] = {}
        self._bets: dict[int, BetRecord] = {}

    @property
    def address(self) -> str:
        return self._config.address

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def config(self) -> OracleConfig:
        return self._config

    def _require_owner(self, caller: str) -> None:
        if caller.lower() != self._config.owner:
            raise UnauthorizedCallerError("Only the gateway owner can call this function")

    # ------------------------------------------------------------------
    # Owner configuration
    # ------------------------------------------------------------------

    def configure(
        self,
        caller: str,
        *,
        market_address: str | None = None,
        system_prompt_prefix: str | None = None,
        system_prompt_suffix: str | None = None,
        model_name: str | None = None,
        node_name: str | None = None,
        resolution_gas_limit: int | None = None,
    ) -> OracleConfig:
        self._require_owner(caller)
        cfg = self._config
        if market_address is not None:
            cfg.market_address = market_address.lower()
        if system_prompt_prefix is not None:
            cfg.system_prompt_prefix = system_prompt_prefix
        if system_prompt_suffix is not None:
            cfg.system_prompt_suffix = system_prompt_suffix
        if model_name is not None:
            cfg.model_name = model_name
        if node_name is not None:
            cfg.node_name = node_name
        if resolution_gas_limit is not None:
            if resolution_gas_limit < 0:
                raise InvalidAmountError("resolution gas limit must be non-negative")
            cfg.resolution_gas_limit = resolution_gas_limit
        logger.info("Oracle gateway reconfigured: market=%s, model=%s, node=%s",
                    cfg.market_address, cfg.model_name, cfg.node_name)
        return cfg

    def set_fees(self, caller: str, fees: OracleFees) -> OracleFees:
        self._require_owner(caller)
        if min(fees.fee_per_byte_req, fees.fee_per_byte_res, fees.total_fee_per_res) < 0:
            raise InvalidAmountError("oracle fees must be non-negative")
        self._config.fees = fees
        return fees

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def restart_session(self, caller: str) -> str:
        """Close the current session and fund a new one with the whole fee balance."""
        self._require_owner(caller)
        async with self._lock:
            balance = await self._fee_token.balance_of(self.address)
            if balance <= 0:
                raise NoFeeTokensError()

            old_session = self._session_id
            if old_session is not None:
                await self._provider.close_session(old_session)
                self._session_id = None

            await self._fee_token.transfer(self.address, self._provider.fee_target, balance)
            new_session = await self._provider.start_session()
            self._session_id = new_session

        logger.info(
            "Oracle session restarted: old=%s, new=%s, funded=%d",
            old_session, new_session, balance,
        )
        self._event_bus.publish(
            SessionRestarted(
                old_session_id=old_session,
                new_session_id=new_session,
                amount_forwarded=balance,
            )
        )
        return new_session

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def build_prompt(self, prompt: str) -> str:
        return f"{self._config.system_prompt_prefix}{prompt}{self._config.system_prompt_suffix}"

    async def resolve(
        self,
        caller: str,
        bet_id: int,
        prompt: str,
        callback: ResolutionCallbackProtocol,
        value: int,
    ) -> str:
        """Submit a resolution prompt for bet_id. Returns the provider request id."""
        if caller.lower() != self._config.market_address:
            raise UnauthorizedCallerError()
        if not prompt or not prompt.strip():
            raise EmptyPromptError()
        if value < self._config.resolution_gas_limit:
            raise InsufficientGasError(self._config.resolution_gas_limit, value)

        async with self._lock:
            if self._session_id is None:
                raise NoActiveSessionError()
            existing = self._bets.get(bet_id)
            if existing is not None:
                pending = self._requests.get(existing.request_id)
                if pending is not None and pending.status == RequestStatus.PENDING:
                    raise BetAlreadyPendingError(bet_id)

            full_prompt = self.build_prompt(prompt)
            request_id = await self._provider.request(
                InferenceRequest(
                    session_id=self._session_id,
                    model_id=await self._provider.model_id(self._config.model_name),
                    node_name=self._config.node_name,
                    prompt=full_prompt,
                    fees=self._config.fees,
                    callback_value=value,
                )
            )
            self._requests[request_id] = ResolutionRequest(
                request_id=request_id,
                bet_id=bet_id,
                prompt=full_prompt,
                session_id=self._session_id,
                callback_value=value,
                submitted_at=self._clock(),
            )
            self._bets[bet_id] = BetRecord(
                bet_id=bet_id, request_id=request_id, callback=callback
            )

        logger.info("Resolve requested: bet=%d, request_id=%s", bet_id, request_id)
        self._event_bus.publish(
            ResolveRequested(bet_id=bet_id, request_id=request_id, prompt=prompt)
        )
        return request_id

    def _pending_request(self, caller: str, request_id: str) -> ResolutionRequest:
        if caller.lower() != self._provider.address.lower():
            raise UnauthorizedCallerError("Only the inference provider can call this function")
        request = self._requests.get(request_id)
        if request is None:
            raise RequestNotFoundError(request_id)
        if request.status != RequestStatus.PENDING:
            raise RequestAlreadyCompletedError(request_id)
        return request

    # ------------------------------------------------------------------
    # Provider callbacks
    # ------------------------------------------------------------------

    async def callback_success(self, caller: str, request_id: str) -> OracleOutcome:
        """Fetch the answer, record it and deliver the parsed outcome to the market.

        A response the provider still reports as pending is not an answer: the
        call raises ResponseNotReadyError and the request stays PENDING, so the
        provider can deliver the callback again.
        """
        async with self._lock:
            request = self._pending_request(caller, request_id)
            response = await self._provider.fetch_response(request_id)
            bet = self._bets[request.bet_id]
            error: str | None = None
            outcome: OracleOutcome | None = None
            if response.status == InferenceStatus.FAILURE:
                error = response.error or "inference failed"
                self._mark_failed(request, bet, error)
            elif response.status != InferenceStatus.SUCCESS:
                logger.info(
                    "Bet %d: response for %s not ready (%s)",
                    bet.bet_id, request_id, response.status.value,
                )
                raise ResponseNotReadyError(request_id)
            else:
                outcome = parse_outcome(response.content)
                request.status = RequestStatus.ANSWERED
                request.completed_at = self._clock()
                bet.response = response.content
                bet.outcome = outcome

        if outcome is None:
            await self._deliver_failure(bet, error or "inference failed")
            return OracleOutcome.UNKNOWN

        logger.info(
            "Bet %d resolved by oracle: outcome=%s, response=%r",
            bet.bet_id, outcome.value, bet.response,
        )
        self._event_bus.publish(
            BetResolved(
                bet_id=bet.bet_id,
                request_id=request_id,
                outcome=outcome.value,
                response=bet.response,
            )
        )
        try:
            await bet.callback.on_pool_resolve(self.address, bet.bet_id, outcome)
        except Exception as exc:
            self._record_delivery_error(bet, exc)
        return outcome

    async def callback_failure(
        self, caller: str, request_id: str, error: str | None = None
    ) -> None:
        """Record a failed inference; the bet's outcome stays UNKNOWN."""
        async with self._lock:
            request = self._pending_request(caller, request_id)
            bet = self._bets[request.bet_id]
            if error is None:
                response = await self._provider.fetch_response(request_id)
                error = response.error or "inference failed"
            self._mark_failed(request, bet, error)
        await self._deliver_failure(bet, error)

    def _mark_failed(self, request: ResolutionRequest, bet: BetRecord, error: str) -> None:
        request.status = RequestStatus.FAILED
        request.completed_at = self._clock()
        bet.error = error
        bet.outcome = OracleOutcome.UNKNOWN

    async def _deliver_failure(self, bet: BetRecord, error: str) -> None:
        logger.warning("Bet %d oracle request %s failed: %s", bet.bet_id, bet.request_id, error)
        self._event_bus.publish(
            ResolutionFailed(bet_id=bet.bet_id, request_id=bet.request_id, error=error)
        )
        try:
            await bet.callback.on_pool_resolve_failed(self.address, bet.bet_id, error)
        except Exception as exc:
            self._record_delivery_error(bet, exc)

    def _record_delivery_error(self, bet: BetRecord, exc: Exception) -> None:
        bet.delivery_error = getattr(exc, "message", None) or str(exc) or type(exc).__name__
        logger.exception("Market callback failed for bet %d", bet.bet_id)
        self._event_bus.publish(
            CallbackDeliveryFailed(
                bet_id=bet.bet_id, request_id=bet.request_id, error=bet.delivery_error
            )
        )

    # ------------------------------------------------------------------
    # Read views
    # ------------------------------------------------------------------

    def get_bet(self, bet_id: int) -> BetRecord | None:
        return self._bets.get(bet_id)

    def get_request(self, request_id: str) -> ResolutionRequest | None:
        return self._requests.get(request_id)
