"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config.settings import settings
from src.pm_common.errors import AppError
from src.pm_common.response import bind_request, error_response
from src.pm_gateway.middleware.request_log import RequestLogMiddleware
from src.pm_gateway.runtime import build_runtime, set_runtime
from src.pm_market.api.fees_router import router as fees_router
from src.pm_market.api.router import router as pools_router
from src.pm_oracle.api.router import router as oracle_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: wire market + oracle gateway. Shutdown: close the provider client."""
    runtime = await build_runtime(settings)
    set_runtime(runtime)
    yield
    aclose = getattr(runtime.provider, "aclose", None)
    if aclose is not None:
        await aclose()
    set_runtime(None)


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = bind_request(error_response(exc.code, exc.message), request)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(pools_router, prefix="/api/v1")
app.include_router(fees_router, prefix="/api/v1")
app.include_router(oracle_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
