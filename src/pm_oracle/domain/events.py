"""Oracle gateway notifications, published on the EventBus."""

from dataclasses import dataclass


@dataclass
class SessionRestarted:
    old_session_id: str | None
    new_session_id: str
    amount_forwarded: int


@dataclass
class ResolveRequested:
    bet_id: int
    request_id: str
    prompt: str


@dataclass
class BetResolved:
    bet_id: int
    request_id: str
    outcome: str
    response: str


@dataclass
class ResolutionFailed:
    bet_id: int
    request_id: str
    error: str


@dataclass
class CallbackDeliveryFailed:
    bet_id: int
    request_id: str
    error: str
