"""
Token metadata lookup.

Names, symbols and logos come from the Jupiter token list first, then from the
node's DAS getAsset method (and the off-chain JSON it points to) for mints the
list does not describe fully. Metadata is display-only, so every failure
degrades to a stub entry holding just the mint address.
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional, Sequence

from aiohttp import ClientSession

from .constants import DEFAULT_METADATA_CACHE_TTL
from .http_client import HttpClient, HttpClientError
from .models.holdings import AssetMetadata
from .rpc_methods import RpcMethods
from .utils import safe_get, validate_url

logger = logging.getLogger(__name__)


def _first(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value:
            return value
    return None


class MetadataClient:
    """
    Best-effort metadata service.

    The token list is cached on the instance for cache_ttl seconds; call
    invalidate() to force a reload on the next lookup.
    """

    def __init__(
        self,
        http_client: HttpClient,
        rpc_methods: RpcMethods,
        token_list_url: str,
        cache_ttl: float = DEFAULT_METADATA_CACHE_TTL,
    ):
        self._http_client = http_client
        self._rpc_methods = rpc_methods
        self.token_list_url = token_list_url
        self._cache_ttl = cache_ttl
        self._token_index: Optional[Dict[str, AssetMetadata]] = None
        self._token_index_loaded_at = 0.0
        self._load_lock = asyncio.Lock()

    def invalidate(self) -> None:
        """Drop the cached token list."""
        self._token_index = None
        self._token_index_loaded_at = 0.0

    def _index_is_fresh(self) -> bool:
        if self._token_index is None:
            return False
        return time.monotonic() - self._token_index_loaded_at < self._cache_ttl

    async def _load_token_index(self, session: ClientSession) -> Optional[Dict[str, AssetMetadata]]:
        """Load (or reuse) the token list index, None if it is unavailable."""
        async with self._load_lock:
            if self._index_is_fresh():
                return self._token_index

            try:
                response = await self._http_client.request(session, "GET", self.token_list_url)
            except HttpClientError as e:
                logger.warning(f"Token list unavailable: {e}")
                return None

            if not isinstance(response, list):
                logger.warning("Token list has an unexpected shape; ignoring it")
                return None

            index: Dict[str, AssetMetadata] = {}
            for entry in response:
                address = safe_get(entry, "address")
                if not address:
                    continue
                index[address] = AssetMetadata(
                    asset_id=address,
                    name=safe_get(entry, "name"),
                    symbol=safe_get(entry, "symbol"),
                    logo_uri=safe_get(entry, "logoURI"),
                )

            self._token_index = index
            self._token_index_loaded_at = time.monotonic()
            logger.info(f"Token list loaded with {len(index)} entries")
            return index

    async def _lookup_asset(
        self, session: ClientSession, asset_id: str, known: Optional[AssetMetadata]
    ) -> Optional[AssetMetadata]:
        """Fill in metadata from DAS getAsset and the asset's off-chain JSON."""
        asset = await self._rpc_methods.get_asset(session, asset_id)
        if not asset:
            return known

        name = safe_get(asset, "content.metadata.name")
        symbol = safe_get(asset, "content.metadata.symbol")
        image = safe_get(asset, "content.links.image")

        json_uri = safe_get(asset, "content.json_uri")
        if validate_url(json_uri):
            try:
                off_chain = await self._http_client.request(session, "GET", json_uri)
            except HttpClientError as e:
                logger.debug(f"Off-chain metadata unavailable for {asset_id}: {e}")
                off_chain = None
            if isinstance(off_chain, dict):
                name = name or off_chain.get("name")
                symbol = symbol or off_chain.get("symbol")
                image = image or off_chain.get("image")

        return AssetMetadata(
            asset_id=asset_id,
            name=_first(known.name if known else None, name),
            symbol=_first(known.symbol if known else None, symbol),
            logo_uri=_first(known.logo_uri if known else None, image),
        )

    async def get_asset_metadata(
        self, session: ClientSession, asset_ids: Sequence[str]
    ) -> Dict[str, AssetMetadata]:
        """
        Get metadata for mints.

        Args:
            session: aiohttp session
            asset_ids: Mint addresses

        Returns:
            Mapping with an entry for every requested mint
        """
        unique: List[str] = list(dict.fromkeys(asset_ids))
        result: Dict[str, AssetMetadata] = {}

        index = await self._load_token_index(session)
        if index:
            for asset_id in unique:
                if asset_id in index:
                    result[asset_id] = index[asset_id]

        incomplete = [
            asset_id for asset_id in unique
            if asset_id not in result or not result[asset_id].is_complete
        ]
        if incomplete:
            lookups = await asyncio.gather(
                *(self._lookup_asset(session, asset_id, result.get(asset_id)) for asset_id in incomplete),
                return_exceptions=True,
            )
            for asset_id, metadata in zip(incomplete, lookups):
                if isinstance(metadata, Exception):
                    logger.warning(f"Metadata lookup failed for {asset_id}: {metadata!r}")
                    continue
                if metadata is not None:
                    result[asset_id] = metadata

        for asset_id in unique:
            result.setdefault(asset_id, AssetMetadata(asset_id=asset_id))
        return result
