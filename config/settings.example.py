"""Configuration template - copy to settings.py and fill in values."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # === Destination chain (pool reads) ===
    RPC_URL: str = ""
    CHAIN_ID: int = 1301
    STATE_VIEW_ADDRESS: str = ""

    # === Token pair ===
    PAIR_TOKEN_A: str = "0x0000000000000000000000000000000000000000"
    PAIR_TOKEN_B: str = ""
    PAIR_HOOKS: str = "0x0000000000000000000000000000000000000000"

    # === Risk simulation ===
    RISK_SCENARIO: str = "default"

    # === Agent policy defaults ===
    POLICY_MAX_SLIPPAGE: float = 0.01
    POLICY_MAX_PRICE_IMPACT: float = 0.02
    POLICY_MIN_CONFIDENCE: float = 0.80
    POLICY_RETRY_ATTEMPTS: int = 3
    POLICY_RETRY_DELAY_SECONDS: float = 30.0
    POLICY_FALLBACK_STRATEGY: str = "wait"

    # === Execution ===
    PAPER_MODE: bool = True

    # === Logging ===
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    model_config = {"env_file": ".env"}


settings = Settings()
