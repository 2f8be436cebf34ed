"""
Configuration loaded from environment variables. Fail-fast on invalid values.
"""

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from scanner.models import Venue


class ConfigurationError(Exception):
    """Raised when thresholds, intervals or venue settings are invalid. Fatal at startup."""
    pass


class Config(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "frozen": True, "extra": "ignore"}

    # Wallet (public half only; key custody lives outside this process)
    wallet_public_key: str = Field(default="", description="Base58 wallet address used as flash-loan signer")

    # Endpoints
    rpc_url: str = "https://api.mainnet-beta.solana.com"
    raydium_host: str = "https://api-v3.raydium.io"
    raydium_trade_host: str = "https://transaction-v1.raydium.io"
    meteora_host: str = "https://dlmm-api.meteora.ag"
    meteora_swap_host: str = "https://quote-api.jup.ag/v6"
    jito_block_engine_url: str = "https://mainnet.block-engine.jito.wtf/api/v1/bundles"
    # Comma-separated list of venues to scan
    enabled_venues: str = "raydium,meteora"

    # Timing (milliseconds)
    scan_interval_ms: int = Field(default=15_000, gt=0)
    freshness_window_ms: int = Field(default=300_000, gt=0)
    # Pools on a venue's first listing are the baseline, not new arrivals
    baseline_first_listing: bool = True
    http_timeout_sec: float = Field(default=10.0, gt=0)

    # Eligibility filters (quote-asset units)
    min_tvl: float = Field(default=1000.0, ge=0)
    min_volume_24h: float = Field(default=5000.0, ge=0)
    # Imbalance must exceed this fraction (0.10 = 10%) to be actionable
    eligibility_threshold: float = Field(default=0.10, ge=0)

    # Execution sizing
    # Loan = loan_fraction * min(reserve_a, reserve_b)
    loan_fraction: float = Field(default=0.03, gt=0, le=1.0)
    slippage_tolerance: float = Field(default=0.01, ge=0, lt=1.0)

    # Priority fees
    priority_fee_lamports: int = Field(default=10_000, ge=0)
    compute_unit_limit: int = Field(default=400_000, gt=0, le=1_400_000)
    compute_unit_price_micro_lamports: int = Field(default=50_000, ge=0)

    # Circuit breaker (pauses execution only; scanning continues)
    max_consecutive_failures: int = Field(default=5, gt=0)
    breaker_cooldown_ms: int = Field(default=60_000, ge=0)

    # Fan-out
    fetch_workers: int = Field(default=8, ge=1, le=32)

    # Modes
    paper_trading: bool = True
    log_level: str = "INFO"


def venues_from_config(cfg: Config) -> list[Venue]:
    """Parse enabled_venues into Venue members. Raises ConfigurationError on unknown names."""
    venues: list[Venue] = []
    for raw in cfg.enabled_venues.split(","):
        name = raw.strip().lower()
        if not name:
            continue
        try:
            venue = Venue(name)
        except ValueError:
            raise ConfigurationError(f"Unknown venue in ENABLED_VENUES: {name!r}") from None
        if venue not in venues:
            venues.append(venue)
    return venues


def validate_config(cfg: Config) -> Config:
    """Cross-field checks pydantic field constraints cannot express."""
    if cfg.freshness_window_ms < cfg.scan_interval_ms:
        raise ConfigurationError(
            f"freshness_window_ms ({cfg.freshness_window_ms}) must be >= "
            f"scan_interval_ms ({cfg.scan_interval_ms}) or pools expire before they are scanned"
        )
    if not venues_from_config(cfg):
        raise ConfigurationError("ENABLED_VENUES must name at least one venue")
    return cfg


def load_config(**overrides) -> Config:
    """Load and validate config from environment. Raises ConfigurationError on invalid values."""
    try:
        cfg = Config(**overrides)
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e
    return validate_config(cfg)
