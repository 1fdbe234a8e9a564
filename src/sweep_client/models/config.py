"""
Configuration models for the sweep client.

Immutable configuration structures following state-first design.
"""

from dataclasses import dataclass
from typing import Optional

from ..constants import (
    DEFAULT_BIRDEYE_BASE_URL,
    DEFAULT_COMMITMENT,
    DEFAULT_CONFIRM_POLL_INTERVAL,
    DEFAULT_CONFIRM_TIMEOUT,
    DEFAULT_FEE_BUFFER_LAMPORTS,
    DEFAULT_JUPITER_PRICE_URL,
    DEFAULT_JUPITER_QUOTE_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_METADATA_CACHE_TTL,
    DEFAULT_PRICE_PROBE_TIMEOUT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_RPC_URL,
    DEFAULT_TIMEOUT,
    DEFAULT_TOKEN_LIST_URL,
)
from ..utils import validate_url

VALID_COMMITMENTS = ("processed", "confirmed", "finalized")


@dataclass(frozen=True)
class SweepConfig:
    """Configuration for the sweep client's external services."""
    rpc_url: str = DEFAULT_RPC_URL
    birdeye_api_key: Optional[str] = None
    birdeye_base_url: str = DEFAULT_BIRDEYE_BASE_URL
    jupiter_price_url: str = DEFAULT_JUPITER_PRICE_URL
    jupiter_quote_url: str = DEFAULT_JUPITER_QUOTE_URL
    token_list_url: str = DEFAULT_TOKEN_LIST_URL
    timeout: float = DEFAULT_TIMEOUT
    price_probe_timeout: float = DEFAULT_PRICE_PROBE_TIMEOUT
    fee_buffer_lamports: int = DEFAULT_FEE_BUFFER_LAMPORTS
    reserve_receiving_rent: bool = True
    commitment: str = DEFAULT_COMMITMENT
    confirm_timeout: float = DEFAULT_CONFIRM_TIMEOUT
    confirm_poll_interval: float = DEFAULT_CONFIRM_POLL_INTERVAL
    metadata_cache_ttl: float = DEFAULT_METADATA_CACHE_TTL

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_urls()
        self._validate_amounts()

    def _validate_urls(self):
        """Validate every service URL."""
        for name in (
            "rpc_url",
            "birdeye_base_url",
            "jupiter_price_url",
            "jupiter_quote_url",
            "token_list_url",
        ):
            value = getattr(self, name)
            if not validate_url(value):
                raise ValueError(f"{name} must be a valid HTTP/HTTPS URL, got {value!r}")

    def _validate_amounts(self):
        """Validate timeouts, buffers and commitment."""
        if self.fee_buffer_lamports < 0:
            raise ValueError(
                f"fee_buffer_lamports cannot be negative (got {self.fee_buffer_lamports})"
            )
        for name in ("timeout", "price_probe_timeout", "confirm_timeout", "confirm_poll_interval"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive (got {getattr(self, name)})")
        if self.metadata_cache_ttl < 0:
            raise ValueError("metadata_cache_ttl cannot be negative")
        if self.commitment not in VALID_COMMITMENTS:
            raise ValueError(
                f"commitment must be one of {VALID_COMMITMENTS}, got {self.commitment!r}"
            )


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for request retry behavior.

    Retries are off by default; transaction submission never retries.
    """
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: float = DEFAULT_RETRY_DELAY
    backoff_factor: float = 2.0
    retry_on_status: tuple[int, ...] = (500, 502, 503, 504)
