"""
Sweep Client - Main orchestration module.

This module provides the SweepClient class that coordinates the account
queries, price resolution, metadata lookup, batch building and submission.

The client follows state-first design with clean separation of concerns:
- Data models are immutable structures in models/
- HTTP operations are handled by http_client.py
- Session management is handled by session_manager.py
- Ledger RPC methods are implemented in rpc_methods.py
- Batch building is a pure function in batch.py
- Pricing, metadata and submission live in dedicated modules
"""

import asyncio
import logging
import os
import time
from typing import Dict, List, Optional, Sequence

from dotenv import load_dotenv

from .batch import build_batch, receiving_account_candidates
from .constants import (
    DEFAULT_BIRDEYE_BASE_URL,
    DEFAULT_COMMITMENT,
    DEFAULT_FEE_BUFFER_LAMPORTS,
    DEFAULT_JUPITER_PRICE_URL,
    DEFAULT_JUPITER_QUOTE_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    DEFAULT_RPC_URL,
    DEFAULT_TIMEOUT,
    DEFAULT_TOKEN_LIST_URL,
    ERROR_STATUS_CODE,
    HELIUS_RPC_URL_TEMPLATE,
    SUCCESS_STATUS_CODE,
    TOKEN_ACCOUNT_SIZE,
)
from .exceptions import ValidationError
from .http_client import HttpClient
from .metadata import MetadataClient
from .models import (
    ActionPlan,
    AssetMetadata,
    AssetRef,
    Batch,
    Holding,
    RetryConfig,
    SubmissionResult,
    SweepConfig,
    WalletSnapshot,
)
from .monitoring import CallMonitor, Statistics
from .price_sources import BirdeyeSpotSource, JupiterPriceSource, JupiterQuoteSource
from .prices import PriceResolver
from .rpc_methods import RpcMethods
from .session_manager import SessionManager
from .submission import Signer, SubmissionDriver
from .utils import format_lamports, validate_address

load_dotenv()
logger = logging.getLogger(__name__)


def _require_addresses(**addresses: str) -> None:
    for label, address in addresses.items():
        if not validate_address(address):
            raise ValidationError(f"Invalid {label.replace('_', ' ')} address: {address!r}")


class SweepClient:
    """
    Main sweep client orchestrator.

    Balance and holdings queries are load-bearing and raise
    DependencyUnavailable; prices and metadata are display-only and degrade to
    partial results instead.
    """

    def __init__(
        self,
        config: Optional[SweepConfig] = None,
        retry_config: Optional[RetryConfig] = None,
    ):
        """Initialize sweep client with configuration."""
        self._config = config or SweepConfig()
        self._session_manager = SessionManager(self._config)
        self._http_client = HttpClient(retry_config)
        self._rpc_methods = RpcMethods(
            self._http_client, self._config.rpc_url, self._config.commitment
        )
        self._price_resolver = PriceResolver(
            BirdeyeSpotSource(
                self._http_client, self._config.birdeye_base_url, self._config.birdeye_api_key
            ),
            JupiterPriceSource(self._http_client, self._config.jupiter_price_url),
            JupiterQuoteSource(self._http_client, self._config.jupiter_quote_url),
            probe_timeout=self._config.price_probe_timeout,
        )
        self._metadata = MetadataClient(
            self._http_client,
            self._rpc_methods,
            self._config.token_list_url,
            cache_ttl=self._config.metadata_cache_ttl,
        )
        self._submission = SubmissionDriver(
            self._rpc_methods,
            commitment=self._config.commitment,
            confirm_timeout=self._config.confirm_timeout,
            poll_interval=self._config.confirm_poll_interval,
        )
        self._monitor = CallMonitor()
        self._closed = False
        logger.info(
            f"Sweep client created (commitment {self._config.commitment}, "
            f"birdeye {'enabled' if self._config.birdeye_api_key else 'disabled'})"
        )

    @classmethod
    def from_env(cls) -> "SweepClient":
        """Create client from environment variables."""
        rpc_url = os.getenv("SWEEP_RPC_URL") or os.getenv("RPC_URL")
        if not rpc_url:
            helius_key = os.getenv("HELIUS_API_KEY", "").strip()
            if helius_key:
                rpc_url = HELIUS_RPC_URL_TEMPLATE.format(api_key=helius_key)
            else:
                logger.warning("No RPC URL configured; using the public mainnet endpoint")
                rpc_url = DEFAULT_RPC_URL

        config = SweepConfig(
            rpc_url=rpc_url,
            birdeye_api_key=os.getenv("BIRDEYE_API_KEY") or None,
            birdeye_base_url=os.getenv("BIRDEYE_BASE_URL", DEFAULT_BIRDEYE_BASE_URL),
            jupiter_price_url=os.getenv("JUPITER_PRICE_URL", DEFAULT_JUPITER_PRICE_URL),
            jupiter_quote_url=os.getenv("JUPITER_QUOTE_URL", DEFAULT_JUPITER_QUOTE_URL),
            token_list_url=os.getenv("TOKEN_LIST_URL", DEFAULT_TOKEN_LIST_URL),
            timeout=float(os.getenv("SWEEP_TIMEOUT", str(DEFAULT_TIMEOUT))),
            fee_buffer_lamports=int(
                os.getenv("SWEEP_FEE_BUFFER_LAMPORTS", str(DEFAULT_FEE_BUFFER_LAMPORTS))
            ),
            commitment=os.getenv("SWEEP_COMMITMENT", DEFAULT_COMMITMENT),
        )

        return cls(config)

    @property
    def config(self) -> SweepConfig:
        return self._config

    # Account queries
    async def get_native_balance(self, owner: str) -> int:
        """Get the native balance of owner, in lamports."""
        return await self._execute_with_monitoring(
            self._rpc_methods.get_balance, "getBalance", owner
        )

    async def get_holdings(self, owner: str) -> List[Holding]:
        """Get every token account of owner, including empty ones."""
        return await self._execute_with_monitoring(
            self._rpc_methods.get_holdings_by_owner, "getTokenAccountsByOwner", owner
        )

    # Display data
    async def resolve_prices(
        self, assets: Sequence[AssetRef], include_native: bool = True
    ) -> Dict[str, float]:
        """Get best-effort USD prices; unresolved assets are simply absent."""
        return await self._execute_with_monitoring(
            self._price_resolver.resolve_prices, "resolvePrices", assets, include_native
        )

    async def get_asset_metadata(self, asset_ids: Sequence[str]) -> Dict[str, AssetMetadata]:
        """Get best-effort metadata; every requested mint gets at least a stub."""
        return await self._execute_with_monitoring(
            self._metadata.get_asset_metadata, "getAssetMetadata", asset_ids
        )

    async def refresh_snapshot(self, owner: str) -> WalletSnapshot:
        """
        Load a fresh view of the wallet.

        Args:
            owner: Wallet address

        Returns:
            WalletSnapshot with balances, prices and metadata

        Raises:
            ValidationError: If owner is malformed
            DependencyUnavailable: If balances or holdings cannot be loaded
        """
        _require_addresses(owner=owner)

        native_balance, holdings = await asyncio.gather(
            self.get_native_balance(owner), self.get_holdings(owner)
        )

        prices, metadata = await asyncio.gather(
            self.resolve_prices(holdings, include_native=True),
            self.get_asset_metadata([holding.asset_id for holding in holdings]),
            return_exceptions=True,
        )
        if isinstance(prices, Exception):
            logger.warning(f"Price resolution failed, continuing without prices: {prices!r}")
            prices = {}
        if isinstance(metadata, Exception):
            logger.warning(f"Metadata lookup failed, continuing without metadata: {metadata!r}")
            metadata = {}

        snapshot = WalletSnapshot(
            owner=owner,
            native_balance=native_balance,
            holdings=tuple(holdings),
            prices=prices,
            metadata=metadata,
            fetched_at=time.time(),
        )
        logger.info(
            f"Snapshot for {owner}: {len(holdings)} token accounts, "
            f"{len(prices)} prices, native balance {format_lamports(native_balance)} SOL"
        )
        return snapshot

    # Batches
    async def build_batch(
        self,
        owner: str,
        plan: ActionPlan,
        value_recipient: str,
        asset_recipient: str,
    ) -> Batch:
        """
        Build a sweep batch from freshly queried balances.

        Addresses are validated before any network call. Holdings are always
        re-read so a stale snapshot is never turned into a batch.

        Raises:
            ValidationError: If an address is malformed
            EmptyBatch: If nothing would be done
            DependencyUnavailable: If balances or account lookups fail
        """
        _require_addresses(
            owner=owner, value_recipient=value_recipient, asset_recipient=asset_recipient
        )

        native_balance, holdings = await asyncio.gather(
            self.get_native_balance(owner), self.get_holdings(owner)
        )

        candidates = receiving_account_candidates(holdings, plan, asset_recipient)
        existing = set()
        if candidates:
            existing = await self._execute_with_monitoring(
                self._rpc_methods.get_existing_accounts, "getMultipleAccounts", candidates
            )

        receiving_account_rent = 0
        if self._config.reserve_receiving_rent and any(c not in existing for c in candidates):
            receiving_account_rent = await self._execute_with_monitoring(
                self._rpc_methods.get_minimum_balance_for_rent_exemption,
                "getMinimumBalanceForRentExemption",
                TOKEN_ACCOUNT_SIZE,
            )

        return build_batch(
            holdings,
            plan,
            value_recipient=value_recipient,
            asset_recipient=asset_recipient,
            fee_payer=owner,
            native_balance=native_balance,
            existing_receiving_accounts=existing,
            fee_buffer=self._config.fee_buffer_lamports,
            receiving_account_rent=receiving_account_rent,
        )

    async def submit_batch(self, batch: Batch, signer: Signer) -> SubmissionResult:
        """Sign, send and confirm a batch. A failed batch must be rebuilt, not resubmitted."""
        return await self._execute_with_monitoring(
            self._submission.submit, "submitBatch", batch, signer
        )

    async def sweep(
        self,
        owner: str,
        plan: ActionPlan,
        value_recipient: str,
        asset_recipient: str,
        signer: Signer,
    ) -> SubmissionResult:
        """Build a batch from fresh balances and submit it."""
        batch = await self.build_batch(owner, plan, value_recipient, asset_recipient)
        for warning in batch.warnings:
            logger.warning(warning)
        return await self.submit_batch(batch, signer)

    # Monitoring and health
    async def health_check(self) -> bool:
        """Check that the ledger node answers and reports healthy."""
        try:
            return await self._execute_with_monitoring(self._rpc_methods.get_health, "getHealth")
        except RuntimeError as e:
            logger.error(f"Health check failed: {e}")
            return False

    def get_statistics(self) -> Statistics:
        """Get call statistics."""
        return self._monitor.statistics

    async def close(self) -> None:
        """Close client and cleanup resources."""
        if not self._closed:
            await self._session_manager.close_session()
            self._closed = True
            logger.info("Sweep client closed")

    async def _execute_with_monitoring(self, api_method, operation: str, *args, **kwargs):
        """Execute a session-bound method with call monitoring."""
        if self._closed:
            raise RuntimeError("Client is closed")

        start_time = asyncio.get_event_loop().time()
        session = await self._session_manager.create_session()

        try:
            result = await api_method(session, *args, **kwargs)
        except Exception as e:
            duration_ms = (asyncio.get_event_loop().time() - start_time) * 1000
            status_code = getattr(e, "status_code", None) or ERROR_STATUS_CODE
            self._monitor.record(operation, status_code, duration_ms)
            raise

        duration_ms = (asyncio.get_event_loop().time() - start_time) * 1000
        self._monitor.record(operation, SUCCESS_STATUS_CODE, duration_ms)
        return result

    # Context manager support
    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    def __del__(self):
        """Cleanup on deletion."""
        if hasattr(self, "_closed") and not self._closed and self._session_manager.session:
            logger.warning("SweepClient not properly closed - call close() explicitly")


def create_sweep_client(
    rpc_url: str = DEFAULT_RPC_URL,
    birdeye_api_key: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
    fee_buffer_lamports: int = DEFAULT_FEE_BUFFER_LAMPORTS,
    commitment: str = DEFAULT_COMMITMENT,
    max_retries: int = DEFAULT_MAX_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY,
) -> SweepClient:
    """
    Factory function to create a sweep client with common configuration.

    Args:
        rpc_url: Ledger JSON-RPC endpoint
        birdeye_api_key: Enables the Birdeye spot price stage
        timeout: Request timeout in seconds
        fee_buffer_lamports: Lamports kept back for the transaction fee
        commitment: Commitment level for queries and confirmation
        max_retries: Retries for read-only requests (submission never retries)
        retry_delay: Initial delay between retries in seconds

    Returns:
        Configured SweepClient instance
    """
    config = SweepConfig(
        rpc_url=rpc_url,
        birdeye_api_key=birdeye_api_key,
        timeout=timeout,
        fee_buffer_lamports=fee_buffer_lamports,
        commitment=commitment,
    )

    retry_config = RetryConfig(
        max_retries=max_retries,
        retry_delay=retry_delay,
    )

    return SweepClient(config, retry_config)
