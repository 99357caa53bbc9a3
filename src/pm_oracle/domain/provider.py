"""Inference provider Protocol — the external service that answers resolution prompts.

Infrastructure layer provides the HTTP implementation; tests inject a fake.
"""

from typing import Protocol

from src.pm_oracle.domain.models import InferenceRequest, InferenceResponse


class InferenceProviderProtocol(Protocol):
    @property
    def address(self) -> str: ...

    @property
    def fee_target(self) -> str: ...

    async def model_id(self, name: str) -> str: ...

    async def start_session(self) -> str: ...

    async def close_session(self, session_id: str) -> None: ...

    async def request(self, request: InferenceRequest) -> str: ...

    async def fetch_response(self, request_id: str) -> InferenceResponse: ...
