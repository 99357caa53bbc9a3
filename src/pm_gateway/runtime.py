"""Process-wide wiring of the market, the oracle gateway and their collaborators.

main.lifespan builds the runtime once; routers reach it through get_runtime.
Tests call set_runtime with their own instance.
"""

import logging
from dataclasses import dataclass

from config.settings import Settings
from src.pm_common.errors import ConfigurationError
from src.pm_common.events import EventBus
from src.pm_market.application.service import Market
from src.pm_market.domain.models import MarketConfig
from src.pm_oracle.application.gateway import OracleGateway
from src.pm_oracle.domain.models import OracleConfig
from src.pm_oracle.domain.provider import InferenceProviderProtocol
from src.pm_oracle.infrastructure.http_provider import HttpInferenceProvider
from src.pm_pricing.engine import PricingEngine
from src.pm_token.infrastructure.memory_token import InMemoryToken

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    collateral_token: InMemoryToken
    fee_token: InMemoryToken
    provider: InferenceProviderProtocol
    market: Market
    gateway: OracleGateway
    event_bus: EventBus


_runtime: Runtime | None = None


async def build_runtime(
    settings: Settings,
    provider: InferenceProviderProtocol | None = None,
) -> Runtime:
    """Assemble a runtime from settings. provider defaults to the HTTP client."""
    event_bus = EventBus()
    collateral_token = InMemoryToken(symbol="mUSD", decimals=settings.COLLATERAL_TOKEN_DECIMALS)
    fee_token = InMemoryToken(symbol="FEE", decimals=18)
    if provider is None:
        provider = HttpInferenceProvider(
            base_url=settings.INFERENCE_BASE_URL,
            address=settings.INFERENCE_PROVIDER_ADDRESS,
            api_key=settings.INFERENCE_API_KEY,
            timeout=settings.INFERENCE_TIMEOUT_SECONDS,
        )

    engine = PricingEngine(await collateral_token.decimals())
    market_config = MarketConfig.from_settings(settings)
    oracle_config = OracleConfig.from_settings(settings)

    gateway = OracleGateway(provider, fee_token, oracle_config, event_bus)
    market = Market(collateral_token, engine, market_config, resolver=gateway, event_bus=event_bus)
    logger.info(
        "Runtime built: market=%s, oracle=%s, provider=%s, token_decimals=%d",
        market.address, gateway.address, provider.address, engine.token_decimals,
    )
    return Runtime(
        collateral_token=collateral_token,
        fee_token=fee_token,
        provider=provider,
        market=market,
        gateway=gateway,
        event_bus=event_bus,
    )


def set_runtime(runtime: Runtime | None) -> None:
    global _runtime
    _runtime = runtime


def get_runtime() -> Runtime:
    """FastAPI dependency."""
    if _runtime is None:
        raise ConfigurationError("runtime not initialised")
    return _runtime
