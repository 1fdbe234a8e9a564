"""
Price source adapters.

Each adapter wraps one external pricing API and degrades to "no answer"
instead of raising: failures are logged and reported as None or an empty
mapping, the same way the public market-data calls behave.
"""

import logging
from typing import Dict, Optional, Sequence

from aiohttp import ClientSession

from .constants import QUOTE_SLIPPAGE_BPS, USDC_MINT
from .http_client import HttpClient, HttpClientError
from .utils import safe_get, usable_price

logger = logging.getLogger(__name__)


class BirdeyeSpotSource:
    """Per-mint spot price from Birdeye. Disabled without an API key."""

    def __init__(self, http_client: HttpClient, base_url: str, api_key: Optional[str] = None):
        self._http_client = http_client
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    async def get_price(self, session: ClientSession, asset_id: str) -> Optional[float]:
        """
        Get the USD spot price of a mint.

        Args:
            session: aiohttp session
            asset_id: Mint address

        Returns:
            Positive finite price, or None when unknown
        """
        if not self.enabled:
            return None

        try:
            response = await self._http_client.request(
                session,
                "GET",
                f"{self.base_url}/defi/price",
                params={"address": asset_id},
                headers={"X-API-KEY": self._api_key, "x-chain": "solana"},
            )
        except HttpClientError as e:
            logger.warning(f"Birdeye price failed for {asset_id}: {e}")
            return None

        return usable_price(safe_get(response, "data.value"))


class JupiterPriceSource:
    """Jupiter price API, indexed by mint address or by symbol."""

    def __init__(self, http_client: HttpClient, price_url: str):
        self._http_client = http_client
        self.price_url = price_url

    async def get_prices(self, session: ClientSession, ids: Sequence[str]) -> Dict[str, float]:
        """
        Get USD prices for several ids in one call.

        Args:
            session: aiohttp session
            ids: Mint addresses or symbols (e.g. "SOL")

        Returns:
            Mapping of id to positive price; unknown ids are absent
        """
        if not ids:
            return {}

        try:
            response = await self._http_client.request(
                session, "GET", self.price_url, params={"ids": ",".join(ids)}
            )
        except HttpClientError as e:
            logger.warning(f"Jupiter price lookup failed for {len(ids)} ids: {e}")
            return {}

        data = safe_get(response, "data", {})
        if not isinstance(data, dict):
            return {}

        prices: Dict[str, float] = {}
        for key, entry in data.items():
            price = usable_price(safe_get(entry, "price"))
            if price is not None:
                prices[key] = price
        return prices


class JupiterQuoteSource:
    """Jupiter swap quotes into USDC, used to derive a price from liquidity."""

    def __init__(
        self,
        http_client: HttpClient,
        quote_url: str,
        output_mint: str = USDC_MINT,
        slippage_bps: int = QUOTE_SLIPPAGE_BPS,
    ):
        self._http_client = http_client
        self.quote_url = quote_url
        self.output_mint = output_mint
        self.slippage_bps = slippage_bps

    async def get_out_amount(
        self, session: ClientSession, input_mint: str, amount: int
    ) -> Optional[int]:
        """
        Quote an exact-in swap of amount raw units of input_mint.

        Returns:
            Raw output amount in the output mint's smallest unit, or None
        """
        params = {
            "inputMint": input_mint,
            "outputMint": self.output_mint,
            "amount": str(amount),
            "slippageBps": self.slippage_bps,
        }
        try:
            response = await self._http_client.request(session, "GET", self.quote_url, params=params)
        except HttpClientError as e:
            logger.warning(f"Jupiter quote failed for {input_mint}: {e}")
            return None

        out_amount = safe_get(response, "outAmount")
        if out_amount is None:
            # Legacy response shape: {"data": [{"outAmount": ...}, ...]}
            routes = safe_get(response, "data")
            if isinstance(routes, list) and routes:
                out_amount = safe_get(routes[0], "outAmount")
        if out_amount is None:
            return None

        try:
            return int(str(out_amount))
        except ValueError:
            logger.warning(f"Jupiter quote for {input_mint} has a non-integer outAmount: {out_amount!r}")
            return None
