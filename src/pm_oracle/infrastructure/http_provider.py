"""HttpInferenceProvider — InferenceProviderProtocol over the provider's REST API.

Endpoints (relative to INFERENCE_BASE_URL):
  GET    /v1/models/{name}        -> {"model_id": ...}
  POST   /v1/sessions             -> {"session_id": ...}
  DELETE /v1/sessions/{id}
  POST   /v1/requests             -> {"request_id": ...}
  GET    /v1/requests/{id}        -> {"status": "PENDING|SUCCESS|FAILURE", "content", "error"}

Transport and HTTP status failures surface as ProviderUnavailableError.
"""

import logging
from dataclasses import asdict
from typing import Any

import httpx

from src.pm_common.enums import InferenceStatus
from src.pm_common.errors import ProviderUnavailableError
from src.pm_oracle.domain.models import InferenceRequest, InferenceResponse

logger = logging.getLogger(__name__)


class HttpInferenceProvider:
    def __init__(
        self,
        base_url: str,
        address: str,
        fee_target: str | None = None,
        api_key: str = "",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._address = address.lower()
        self._fee_target = (fee_target or address).lower()
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = client or httpx.AsyncClient(
            base_url=base_url, timeout=timeout, headers=headers
        )
        self._model_ids: dict[str, str] = {}

    @property
    def address(self) -> str:
        return self._address

    @property
    def fee_target(self) -> str:
        return self._fee_target

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            resp = await self._client.request(method, path, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Inference provider %s %s -> HTTP %d", method, path, exc.response.status_code
            )
            raise ProviderUnavailableError(
                f"{method} {path} returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Inference provider %s %s failed: %s", method, path, exc)
            raise ProviderUnavailableError(f"{method} {path} failed: {exc}") from exc
        if not resp.content:
            return {}
        body: dict[str, Any] = resp.json()
        return body

    async def model_id(self, name: str) -> str:
        if name not in self._model_ids:
            body = await self._call("GET", f"/v1/models/{name}")
            self._model_ids[name] = str(body["model_id"])
        return self._model_ids[name]

    async def start_session(self) -> str:
        body = await self._call("POST", "/v1/sessions")
        session_id = str(body["session_id"])
        logger.info("Inference session started: %s", session_id)
        return session_id

    async def close_session(self, session_id: str) -> None:
        await self._call("DELETE", f"/v1/sessions/{session_id}")
        logger.info("Inference session closed: %s", session_id)

    async def request(self, request: InferenceRequest) -> str:
        body = await self._call("POST", "/v1/requests", json=asdict(request))
        return str(body["request_id"])

    async def fetch_response(self, request_id: str) -> InferenceResponse:
        body = await self._call("GET", f"/v1/requests/{request_id}")
        return InferenceResponse(
            request_id=request_id,
            status=InferenceStatus(body.get("status", InferenceStatus.PENDING.value)),
            content=body.get("content") or "",
            error=body.get("error") or "",
        )
