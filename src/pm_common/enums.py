"""Global enums shared by the market, pricing and oracle modules."""

from enum import Enum


class Side(str, Enum):
    YES = "YES"
    NO = "NO"


class TradeDirection(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class Role(str, Enum):
    """Role claim carried by an access token."""
    TRADER = "TRADER"
    OWNER = "OWNER"


class Resolution(str, Enum):
    """Pool resolution. UNRESOLVED is the only non-terminal value."""
    UNRESOLVED = "UNRESOLVED"
    YES = "YES"
    NO = "NO"
    INCONCLUSIVE = "INCONCLUSIVE"


class OracleOutcome(str, Enum):
    """Outcome as classified by the oracle gateway."""
    UNKNOWN = "UNKNOWN"
    TRUE = "TRUE"
    FALSE = "FALSE"
    INCONCLUSIVE = "INCONCLUSIVE"


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    ANSWERED = "ANSWERED"
    FAILED = "FAILED"


class InferenceStatus(str, Enum):
    """Status reported by the inference provider for a fetched response."""
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
