"""Shared test fixtures.

Everything runs against the in-memory token, an in-memory pool store, a fake
inference provider and a controllable clock.
"""

# ruff: noqa: E402  -- JWT_SECRET must be set before config.settings is imported

import os

os.environ.setdefault("JWT_SECRET", "test-jwt-secret")

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from src.main import app
from src.pm_common.enums import InferenceStatus, Role
from src.pm_common.events import EventBus
from src.pm_gateway.auth.jwt_handler import create_access_token
from src.pm_gateway.runtime import Runtime, set_runtime
from src.pm_market.application.service import Market
from src.pm_market.domain.models import MarketConfig, Pool
from src.pm_oracle.application.gateway import OracleGateway
from src.pm_oracle.domain.models import InferenceRequest, InferenceResponse, OracleConfig
from src.pm_pricing.engine import PricingEngine
from src.pm_token.infrastructure.memory_token import InMemoryToken

USDC = 10**6  # one whole collateral token at 6 decimals


@dataclass
class Addresses:
    creator: str = "0x" + "11" * 20
    alice: str = "0x" + "22" * 20
    bob: str = "0x" + "33" * 20
    referrer: str = "0x" + "44" * 20
    owner: str = "0x" + "f0" * 20
    reserve: str = "0x" + "fe" * 20
    market: str = "0x" + "a1" * 20
    oracle: str = "0x" + "b2" * 20
    provider: str = "0x" + "c3" * 20
    fee_target: str = "0x" + "c4" * 20


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now += timedelta(**kwargs)


class FakeInferenceProvider:
    """Records submitted requests; tests decide what each request answers."""

    def __init__(self, address: str, fee_target: str) -> None:
        self._address = address
        self._fee_target = fee_target
        self.sessions_started = 0
        self.closed_sessions: list[str] = []
        self.requests: dict[str, InferenceRequest] = {}
        self.responses: dict[str, InferenceResponse] = {}

    @property
    def address(self) -> str:
        return self._address

    @property
    def fee_target(self) -> str:
        return self._fee_target

    async def model_id(self, name: str) -> str:
        return f"id:{name}"

    async def start_session(self) -> str:
        self.sessions_started += 1
        return f"session-{self.sessions_started}"

    async def close_session(self, session_id: str) -> None:
        self.closed_sessions.append(session_id)

    async def request(self, request: InferenceRequest) -> str:
        request_id = f"req-{len(self.requests) + 1}"
        self.requests[request_id] = request
        return request_id

    async def fetch_response(self, request_id: str) -> InferenceResponse:
        return self.responses.get(
            request_id, InferenceResponse(request_id=request_id, status=InferenceStatus.PENDING)
        )

    def answer(self, request_id: str, content: str) -> None:
        self.responses[request_id] = InferenceResponse(
            request_id=request_id, status=InferenceStatus.SUCCESS, content=content
        )

    def fail(self, request_id: str, error: str) -> None:
        self.responses[request_id] = InferenceResponse(
            request_id=request_id, status=InferenceStatus.FAILURE, error=error
        )

    @property
    def last_request_id(self) -> str:
        return list(self.requests)[-1]


@pytest.fixture
def addrs() -> Addresses:
    return Addresses()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, tzinfo=UTC))


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def events(event_bus: EventBus) -> list[Any]:
    received: list[Any] = []
    event_bus.subscribe(received.append)
    return received


@pytest.fixture
def token() -> InMemoryToken:
    return InMemoryToken(symbol="mUSD", decimals=6)


@pytest.fixture
def fee_token() -> InMemoryToken:
    return InMemoryToken(symbol="FEE", decimals=18)


@pytest.fixture
def provider(addrs: Addresses) -> FakeInferenceProvider:
    return FakeInferenceProvider(addrs.provider, addrs.fee_target)


@pytest.fixture
def market_config(addrs: Addresses) -> MarketConfig:
    return MarketConfig(
        address=addrs.market,
        owner=addrs.owner,
        fee_reserve=addrs.reserve,
        oracle_address=addrs.oracle,
    )


@pytest.fixture
def oracle_config(addrs: Addresses) -> OracleConfig:
    return OracleConfig(
        address=addrs.oracle,
        owner=addrs.owner,
        market_address=addrs.market,
        system_prompt_prefix="PROMPT<<<",
        system_prompt_suffix=">>>",
        model_name="model.test",
        node_name="node.test",
        resolution_gas_limit=500_000,
    )


@pytest.fixture
def gateway(
    provider: FakeInferenceProvider,
    fee_token: InMemoryToken,
    oracle_config: OracleConfig,
    event_bus: EventBus,
    clock: FakeClock,
) -> OracleGateway:
    return OracleGateway(provider, fee_token, oracle_config, event_bus, clock)


@pytest.fixture
def market(
    token: InMemoryToken,
    market_config: MarketConfig,
    gateway: OracleGateway,
    event_bus: EventBus,
    clock: FakeClock,
) -> Market:
    return Market(
        token,
        PricingEngine(6),
        market_config,
        resolver=gateway,
        event_bus=event_bus,
        clock=clock,
    )


@pytest.fixture
def fund(
    token: InMemoryToken, addrs: Addresses
) -> Callable[[str, int], Awaitable[None]]:
    """Mint collateral to an address and approve the market to pull it."""

    async def _fund(address: str, amount: int) -> None:
        await token.mint(address, amount)
        current = await token.allowance(address, addrs.market)
        await token.approve(address, addrs.market, current + amount)

    return _fund


@pytest.fixture
def make_pool(
    market: Market,
    fund: Callable[[str, int], Awaitable[None]],
    clock: FakeClock,
    addrs: Addresses,
) -> Callable[..., Awaitable[Pool]]:
    """Create a pool: closes in 1 day, resolvable after 2 days."""

    async def _make_pool(liquidity: int = 20 * USDC, **kwargs: Any) -> Pool:
        await fund(addrs.creator, liquidity)
        params: dict[str, Any] = dict(
            title="Will it rain in Lisbon tomorrow?",
            resolution_prompt="Did it rain in Lisbon on 2026-01-02?",
            initial_liquidity=liquidity,
            closing_time=clock.now + timedelta(days=1),
            resolution_time=clock.now + timedelta(days=2),
        )
        params.update(kwargs)
        return await market.create_bet(addrs.creator, **params)

    return _make_pool


@pytest.fixture
async def open_session(
    gateway: OracleGateway, fee_token: InMemoryToken, addrs: Addresses
) -> str:
    """Fund the gateway with fee tokens and start an inference session."""
    await fee_token.mint(addrs.oracle, 10**18)
    return await gateway.restart_session(addrs.owner)


@pytest.fixture
async def client(
    token: InMemoryToken,
    fee_token: InMemoryToken,
    provider: FakeInferenceProvider,
    market: Market,
    gateway: OracleGateway,
    event_bus: EventBus,
) -> AsyncClient:
    """Async HTTP client for testing FastAPI endpoints against the fixture runtime."""
    set_runtime(
        Runtime(
            collateral_token=token,
            fee_token=fee_token,
            provider=provider,
            market=market,
            gateway=gateway,
            event_bus=event_bus,
        )
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    set_runtime(None)


@pytest.fixture
def auth() -> Callable[..., dict[str, str]]:
    """Authorization header carrying a freshly issued access token."""

    def _auth(address: str, role: Role = Role.TRADER) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(address, role)}"}

    return _auth
