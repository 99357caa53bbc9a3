"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Caller / authorization
  2xxx: Balances and token transfers
  3xxx: Pool lifecycle
  4xxx: Trading
  5xxx: Pricing / fixed-point math
  6xxx: Oracle gateway
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Caller / authorization ---

class UnauthorizedCallerError(AppError):
    def __init__(self, detail: str = "invalid sender") -> None:
        super().__init__(1001, detail, 403)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Invalid or expired access token", 401)


class OwnerRoleRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Owner role required", 403)


# --- 2xxx: Balances and token transfers ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required}, available {available}",
            422,
        )


class InsufficientAllowanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2002,
            f"Insufficient allowance: required {required}, available {available}",
            422,
        )


class NoFundsToWithdrawError(AppError):
    def __init__(self) -> None:
        super().__init__(2003, "No funds to withdraw", 422)


class NoFeesToWithdrawError(AppError):
    def __init__(self) -> None:
        super().__init__(2004, "No fees to withdraw", 422)


class InsufficientSharesError(AppError):
    def __init__(self, side: str, required: int, available: int) -> None:
        super().__init__(
            2005,
            f"Insufficient {side} shares: required {required}, available {available}",
            422,
        )


# --- 3xxx: Pool lifecycle ---

class PoolNotFoundError(AppError):
    def __init__(self, pool_id: int) -> None:
        super().__init__(3001, f"Pool not found: {pool_id}", 404)


class InvalidPoolParamsError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3002, f"Invalid pool parameters: {detail}", 422)


class PoolAlreadyResolvedError(AppError):
    def __init__(self, pool_id: int) -> None:
        super().__init__(3003, f"Pool already resolved: {pool_id}", 409)


class PoolNotResolvedError(AppError):
    def __init__(self, pool_id: int) -> None:
        super().__init__(3004, f"Pool not resolved: {pool_id}", 422)


class NotYetResolutionTimeError(AppError):
    def __init__(self, pool_id: int) -> None:
        super().__init__(3005, f"Not yet resolution time for pool {pool_id}", 422)


class ResolutionPendingError(AppError):
    def __init__(self, pool_id: int) -> None:
        super().__init__(3006, f"Resolution already requested for pool {pool_id}", 409)


class GracePeriodNotElapsedError(AppError):
    def __init__(self, pool_id: int) -> None:
        super().__init__(
            3007, f"Resolution grace period has not elapsed for pool {pool_id}", 422
        )


# --- 4xxx: Trading ---

class TradingClosedError(AppError):
    def __init__(self, pool_id: int) -> None:
        super().__init__(4001, f"Trading has closed for pool {pool_id}", 422)


class TradingBlockedError(AppError):
    def __init__(self, address: str) -> None:
        super().__init__(4002, f"Address is blocked from trading: {address}", 403)


class InvalidAmountError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4003, f"Invalid amount: {detail}", 422)


class InsufficientCollateralError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            4004,
            f"Pool collateral too low: required {required}, available {available}",
            422,
        )


# --- 5xxx: Pricing / fixed-point ---

class PricingOverflowError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(5001, f"Fixed-point overflow: {detail}", 422)


class PricingDomainError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(5002, f"Fixed-point operand out of range: {detail}", 422)


# --- 6xxx: Oracle gateway ---

class NoFeeTokensError(AppError):
    def __init__(self) -> None:
        super().__init__(6001, "No fee tokens", 422)


class InsufficientGasError(AppError):
    def __init__(self, required: int, attached: int) -> None:
        super().__init__(
            6002, f"insufficient gas: required {required}, attached {attached}", 422
        )


class NoActiveSessionError(AppError):
    def __init__(self) -> None:
        super().__init__(6003, "No active inference session", 422)


class RequestNotFoundError(AppError):
    def __init__(self, request_id: str) -> None:
        super().__init__(6004, f"Resolution request not found: {request_id}", 404)


class RequestAlreadyCompletedError(AppError):
    def __init__(self, request_id: str) -> None:
        super().__init__(6005, f"Resolution request already completed: {request_id}", 409)


class BetAlreadyPendingError(AppError):
    def __init__(self, bet_id: int) -> None:
        super().__init__(6006, f"Resolution already pending for bet {bet_id}", 409)


class EmptyPromptError(AppError):
    def __init__(self) -> None:
        super().__init__(6007, "Resolution prompt is empty", 422)


class ProviderUnavailableError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(6008, f"Inference provider error: {detail}", 502)


class BetNotFoundError(AppError):
    def __init__(self, bet_id: int) -> None:
        super().__init__(6009, f"No oracle record for bet: {bet_id}", 404)


class ResponseNotReadyError(AppError):
    def __init__(self, request_id: str) -> None:
        super().__init__(6010, f"Inference response not ready yet: {request_id}", 409)


# --- 9xxx: System ---

class ConfigurationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9001, f"Configuration error: {detail}", 500)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
