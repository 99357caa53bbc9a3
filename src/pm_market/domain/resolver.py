"""Oracle-side surface the market depends on.

The market only submits resolution requests; answers come back later through
ResolutionCallbackProtocol, invoked by the gateway with its own address as caller.
"""

from typing import Protocol

from src.pm_common.enums import OracleOutcome


class ResolutionCallbackProtocol(Protocol):
    async def on_pool_resolve(
        self, caller: str, pool_id: int, outcome: OracleOutcome
    ) -> None: ...

    async def on_pool_resolve_failed(
        self, caller: str, pool_id: int, error: str
    ) -> None: ...


class ResolverProtocol(Protocol):
    async def resolve(
        self,
        caller: str,
        bet_id: int,
        prompt: str,
        callback: ResolutionCallbackProtocol,
        value: int,
    ) -> str: ...
