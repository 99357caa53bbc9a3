"""Pydantic schemas for pm_oracle API requests and responses."""

from datetime import datetime

from pydantic import BaseModel

from src.pm_oracle.domain.models import BetRecord, ResolutionRequest


class CallbackFailureRequest(BaseModel):
    error: str | None = None


class SessionResponse(BaseModel):
    session_id: str | None


class BetResponse(BaseModel):
    bet_id: int
    request_id: str
    outcome: str
    response: str
    error: str
    delivery_error: str

    @classmethod
    def from_domain(cls, bet: BetRecord) -> "BetResponse":
        return cls(
            bet_id=bet.bet_id,
            request_id=bet.request_id,
            outcome=bet.outcome.value,
            response=bet.response,
            error=bet.error,
            delivery_error=bet.delivery_error,
        )


class RequestResponse(BaseModel):
    request_id: str
    bet_id: int
    status: str
    session_id: str
    callback_value: int
    submitted_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_domain(cls, req: ResolutionRequest) -> "RequestResponse":
        return cls(
            request_id=req.request_id,
            bet_id=req.bet_id,
            status=req.status.value,
            session_id=req.session_id,
            callback_value=req.callback_value,
            submitted_at=req.submitted_at,
            completed_at=req.completed_at,
        )


class CallbackResponse(BaseModel):
    request_id: str
    outcome: str
