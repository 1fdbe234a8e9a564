"""
Price resolution with a chain of fallback sources.

Stages run in order and each one only looks at assets that are still
unpriced:

    1. spot      - Birdeye, one concurrent probe per mint
    2. native    - Jupiter price by symbol, only for the native asset
    3. batch     - Jupiter price, one call for every missing mint
    4. quote     - Jupiter quote of one whole token into USDC, concurrent

A stage starts only once every probe of the previous stage has settled.
Stage outputs are folded into the result with merge_quotes, which never
replaces a price that is already known. Failures and timeouts leave the asset
unpriced; resolve_prices itself does not raise for them.
"""

import asyncio
import logging
from typing import Any, Awaitable, Dict, List, Mapping, Optional, Protocol, Sequence

from aiohttp import ClientSession

from .constants import (
    DEFAULT_PRICE_PROBE_TIMEOUT,
    NATIVE_PRICE_KEY,
    NATIVE_SYMBOL,
    USDC_DECIMALS,
)
from .models.holdings import AssetRef
from .utils import dedupe_by, one_whole_unit, usable_price

logger = logging.getLogger(__name__)


class SpotSource(Protocol):
    async def get_price(self, session: ClientSession, asset_id: str) -> Optional[float]: ...


class AggregatorSource(Protocol):
    async def get_prices(self, session: ClientSession, ids: Sequence[str]) -> Dict[str, float]: ...


class QuoteSource(Protocol):
    async def get_out_amount(
        self, session: ClientSession, input_mint: str, amount: int
    ) -> Optional[int]: ...


def merge_quotes(accumulated: Mapping[str, float], stage_result: Mapping[str, Any]) -> Dict[str, float]:
    """
    Fold one stage's output into the accumulated prices.

    Known prices are never overwritten. Zero, negative and non-finite values
    count as unresolved and are dropped.
    """
    merged = dict(accumulated)
    for key, value in stage_result.items():
        if key in merged:
            continue
        price = usable_price(value)
        if price is not None:
            merged[key] = price
    return merged


def quote_to_price(out_amount: int, quote_decimals: int = USDC_DECIMALS) -> float:
    """USD price from the raw stable-coin amount received for one whole token."""
    return out_amount / 10 ** quote_decimals


class PriceResolver:
    """Resolves best-effort USD unit prices for a set of assets."""

    def __init__(
        self,
        spot_source: SpotSource,
        aggregator_source: AggregatorSource,
        quote_source: QuoteSource,
        probe_timeout: float = DEFAULT_PRICE_PROBE_TIMEOUT,
    ):
        self._spot = spot_source
        self._aggregator = aggregator_source
        self._quote = quote_source
        self._probe_timeout = probe_timeout

    async def resolve_prices(
        self,
        session: ClientSession,
        assets: Sequence[AssetRef],
        include_native: bool = True,
    ) -> Dict[str, float]:
        """
        Resolve USD prices for assets.

        Args:
            session: aiohttp session
            assets: Objects with asset_id and decimals (AssetRef or Holding)
            include_native: Also resolve the native asset, keyed "NATIVE"

        Returns:
            Mapping of asset id (and "NATIVE") to price; unresolved assets are absent
        """
        unique = dedupe_by(list(assets), key=lambda asset: asset.asset_id)
        stages = (
            self._spot_stage,
            self._native_stage,
            self._batch_stage,
            self._quote_stage,
        )

        prices: Dict[str, float] = {}
        for stage in stages:
            missing = [asset for asset in unique if asset.asset_id not in prices]
            result = await stage(session, missing, prices, include_native)
            prices = merge_quotes(prices, result)

        unresolved = [asset.asset_id for asset in unique if asset.asset_id not in prices]
        if unresolved:
            logger.info(f"No price found for {len(unresolved)} of {len(unique)} assets")
        return prices

    async def _probe(self, awaitable: Awaitable[Any], label: str) -> Any:
        """Await one source call, turning failures and timeouts into None."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self._probe_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Price probe timed out: {label}")
        except Exception as e:
            logger.warning(f"Price probe failed: {label}: {e!r}")
        return None

    async def _spot_stage(
        self,
        session: ClientSession,
        missing: List[Any],
        resolved: Mapping[str, float],
        include_native: bool,
    ) -> Dict[str, Any]:
        if not missing:
            return {}
        results = await asyncio.gather(
            *(self._probe(self._spot.get_price(session, asset.asset_id), f"spot {asset.asset_id}")
              for asset in missing),
            return_exceptions=True,
        )
        return {
            asset.asset_id: price
            for asset, price in zip(missing, results)
            if not isinstance(price, BaseException) and price is not None
        }

    async def _native_stage(
        self,
        session: ClientSession,
        missing: List[Any],
        resolved: Mapping[str, float],
        include_native: bool,
    ) -> Dict[str, Any]:
        if not include_native or NATIVE_PRICE_KEY in resolved:
            return {}
        result = await self._probe(
            self._aggregator.get_prices(session, [NATIVE_SYMBOL]), "aggregator native"
        )
        if not result or NATIVE_SYMBOL not in result:
            return {}
        return {NATIVE_PRICE_KEY: result[NATIVE_SYMBOL]}

    async def _batch_stage(
        self,
        session: ClientSession,
        missing: List[Any],
        resolved: Mapping[str, float],
        include_native: bool,
    ) -> Dict[str, Any]:
        if not missing:
            return {}
        ids = [asset.asset_id for asset in missing]
        result = await self._probe(
            self._aggregator.get_prices(session, ids), f"aggregator batch ({len(ids)} ids)"
        )
        if not result:
            return {}
        return {asset_id: result[asset_id] for asset_id in ids if asset_id in result}

    async def _quote_stage(
        self,
        session: ClientSession,
        missing: List[Any],
        resolved: Mapping[str, float],
        include_native: bool,
    ) -> Dict[str, Any]:
        if not missing:
            return {}
        results = await asyncio.gather(
            *(self._probe(
                self._quote.get_out_amount(session, asset.asset_id, one_whole_unit(asset.decimals)),
                f"quote {asset.asset_id}",
            ) for asset in missing),
            return_exceptions=True,
        )

        prices: Dict[str, Any] = {}
        for asset, out_amount in zip(missing, results):
            if isinstance(out_amount, BaseException) or out_amount is None:
                continue
            prices[asset.asset_id] = quote_to_price(out_amount)
        return prices
