"""Runtime configuration loaded from environment / .env."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # === Destination chain (pool reads) ===
    RPC_URL: str = ""
    CHAIN_ID: int = 1301  # Unichain Sepolia
    STATE_VIEW_ADDRESS: str = ""
    POOL_READ_TIMEOUT_SECONDS: float = 10.0
    POOL_READ_MAX_ATTEMPTS: int = 3
    POOL_READ_BASE_DELAY: float = 0.1  # 100ms, 200ms, 400ms

    # === Token pair for autonomous pool selection ===
    PAIR_TOKEN_A: str = "0x0000000000000000000000000000000000000000"  # native ETH
    PAIR_TOKEN_B: str = "0x31d0220469e10c4e71834a79b1f276d740d3768f"  # USDC
    PAIR_HOOKS: str = "0x0000000000000000000000000000000000000000"
    TOKEN0_DECIMALS: int = 18
    TOKEN1_DECIMALS: int = 6

    # === Risk simulation ===
    RISK_SCENARIO: str = "default"  # optimistic | default | pessimistic

    # === Agent policy defaults ===
    POLICY_MAX_SLIPPAGE: float = 0.01  # 1%
    POLICY_MAX_PRICE_IMPACT: float = 0.02  # 2%
    POLICY_MIN_CONFIDENCE: float = 0.80
    POLICY_MAX_LATENCY_SECONDS: float = 300.0  # 5 minutes
    POLICY_RETRY_ATTEMPTS: int = 3
    POLICY_RETRY_DELAY_SECONDS: float = 30.0
    POLICY_FALLBACK_STRATEGY: str = "wait"  # wait | abort

    # === Pool selection ===
    POLICY_MIN_LIQUIDITY: int = 0
    POLICY_PREFERRED_FEE_TIERS: str = "3000,500"  # 0.30% then 0.05%
    POLICY_MIN_FEE_TIER: int = 100
    POLICY_MAX_FEE_TIER: int = 10000
    POLICY_TICK_RANGE_WIDTH: int = 2000  # ~20% price range
    POLICY_POSITION_TYPE: str = "one_sided_token1"

    # === Execution ===
    PAPER_MODE: bool = True

    # === Logging ===
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    model_config = {"env_file": ".env"}


settings = Settings()
