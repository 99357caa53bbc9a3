"""Domain models for pm_oracle — pure dataclasses, no business logic."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.pm_common.enums import InferenceStatus, OracleOutcome, RequestStatus


@dataclass
class OracleFees:
    fee_per_byte_req: int = 20
    fee_per_byte_res: int = 20
    total_fee_per_res: int = 1_000_000


@dataclass
class OracleConfig:
    address: str
    owner: str
    market_address: str
    system_prompt_prefix: str
    system_prompt_suffix: str
    model_name: str
    node_name: str
    fees: OracleFees = field(default_factory=OracleFees)
    resolution_gas_limit: int = 500_000

    @classmethod
    def from_settings(cls, settings: Any) -> "OracleConfig":
        return cls(
            address=settings.ORACLE_ADDRESS.lower(),
            owner=settings.MARKET_OWNER.lower(),
            market_address=settings.MARKET_ADDRESS.lower(),
            system_prompt_prefix=settings.ORACLE_SYSTEM_PROMPT_PREFIX,
            system_prompt_suffix=settings.ORACLE_SYSTEM_PROMPT_SUFFIX,
            model_name=settings.ORACLE_MODEL_NAME,
            node_name=settings.ORACLE_NODE_NAME,
            fees=OracleFees(
                fee_per_byte_req=settings.ORACLE_FEE_PER_BYTE_REQ,
                fee_per_byte_res=settings.ORACLE_FEE_PER_BYTE_RES,
                total_fee_per_res=settings.ORACLE_TOTAL_FEE_PER_RES,
            ),
            resolution_gas_limit=settings.ORACLE_RESOLUTION_GAS_LIMIT,
        )


@dataclass
class InferenceRequest:
    """What the gateway submits to the provider under an open session."""

    session_id: str
    model_id: str
    node_name: str
    prompt: str
    fees: OracleFees
    callback_value: int


@dataclass
class InferenceResponse:
    request_id: str
    status: InferenceStatus
    content: str = ""
    error: str = ""


@dataclass
class ResolutionRequest:
    request_id: str
    bet_id: int
    prompt: str
    session_id: str
    callback_value: int
    status: RequestStatus = RequestStatus.PENDING
    submitted_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass
class BetRecord:
    bet_id: int
    request_id: str
    callback: Any = field(default=None, repr=False, compare=False)
    outcome: OracleOutcome = OracleOutcome.UNKNOWN
    response: str = ""
    error: str = ""
    delivery_error: str = ""
