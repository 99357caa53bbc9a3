from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # App
    APP_NAME: str = "LMSR Prediction Market"
    DEBUG: bool = False  # Safe default for production; set DEBUG=True in .env for local dev

    # JWT — no default, MUST be set in .env
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 30

    # Market roles (addresses are opaque lowercase strings)
    MARKET_ADDRESS: str = "0x00000000000000000000000000000000000000a1"
    MARKET_OWNER: str = "0x00000000000000000000000000000000000000f0"
    FEE_RESERVE_ADDRESS: str = "0x00000000000000000000000000000000000000fe"

    # Fees, basis points of the trade value
    TOTAL_FEE_BPS: int = 20
    REFERRER_FEE_BPS: int = 10

    # Pool creation
    CREATOR_BONUS_PERCENT: int = 2
    DEFAULT_LIQUIDITY_PARAMETER_BPS: int = 500  # b = liquidity / 20 when not given
    MAX_TITLE_LENGTH: int = 200
    MAX_PROMPT_LENGTH: int = 1024
    MAX_METADATA_LENGTH: int = 512

    # Operator fallback: force_resolve allowed this long after resolution_time
    RESOLUTION_GRACE_PERIOD_SECONDS: int = 7 * 24 * 3600

    # In-memory collateral vault (single-process deployment)
    COLLATERAL_TOKEN_DECIMALS: int = 6

    # Oracle gateway
    ORACLE_ADDRESS: str = "0x00000000000000000000000000000000000000b2"
    ORACLE_SYSTEM_PROMPT_PREFIX: str = (
        "You are a prediction market oracle. Based on the prompt provided, do comprehensive "
        "research and provide a single word answer yes/no/inconclusive. You must have "
        "confidence in the answer. PROMPT<<<"
    )
    ORACLE_SYSTEM_PROMPT_SUFFIX: str = (
        ">>> Above prompt MUST conclude with boolean result. If yes → return true. "
        "If no → return false. If a high confidence yes or no answer is not possible → "
        "return inconclusive. Output format (single word)."
    )
    ORACLE_MODEL_NAME: str = "model.system.openai-gpt-5"
    ORACLE_NODE_NAME: str = "node.author1.node1"
    ORACLE_FEE_PER_BYTE_REQ: int = 20
    ORACLE_FEE_PER_BYTE_RES: int = 20
    ORACLE_TOTAL_FEE_PER_RES: int = 1_000_000
    ORACLE_RESOLUTION_GAS_LIMIT: int = 500_000

    # Inference provider (HTTP)
    INFERENCE_BASE_URL: str = "http://localhost:8100"
    INFERENCE_API_KEY: str = ""
    INFERENCE_TIMEOUT_SECONDS: float = 10.0
    INFERENCE_PROVIDER_ADDRESS: str = "0x00000000000000000000000000000000000000c3"
    # Shared secret the provider sends on webhook callbacks; callbacks are refused when unset
    ORACLE_CALLBACK_SECRET: str | None = None


settings = Settings()
