# -*- coding: utf-8 -*-
"""
Tests for the metadata client.
"""

import pytest
from unittest.mock import AsyncMock, Mock

from sweep_client.http_client import HttpClientError
from sweep_client.metadata import MetadataClient
from sweep_client.models import AssetMetadata
from sweep_client.rpc_methods import RpcMethods

from conftest import make_address

TOKEN_LIST_URL = "https://tokens.test.example.com/all"
JSON_URI = "https://arweave.test.example.com/meta.json"

KNOWN = make_address(110)
PARTIAL = make_address(111)
UNKNOWN = make_address(112)

TOKEN_LIST = [
    {"address": KNOWN, "name": "Known Token", "symbol": "KNW", "logoURI": "https://img/knw.png"},
    {"address": PARTIAL, "name": "Partial Token", "symbol": "PRT"},
    {"symbol": "NOADDR"},
]


@pytest.fixture
def mock_rpc_methods():
    rpc_methods = Mock(spec=RpcMethods)
    rpc_methods.get_asset = AsyncMock(return_value=None)
    return rpc_methods


@pytest.fixture
def metadata_client(mock_http_client, mock_rpc_methods):
    return MetadataClient(mock_http_client, mock_rpc_methods, TOKEN_LIST_URL, cache_ttl=3600)


def serve(token_list=TOKEN_LIST, off_chain=None):
    async def request(session, method, url, **kwargs):
        if url == TOKEN_LIST_URL:
            if isinstance(token_list, Exception):
                raise token_list
            return token_list
        if url == JSON_URI:
            if off_chain is None:
                raise HttpClientError("not found", status_code=404)
            return off_chain
        raise AssertionError(f"unexpected url {url}")
    return request


class TestTokenList:
    """Test lookups answered by the token list."""

    @pytest.mark.asyncio
    async def test_complete_entry_needs_no_lookup(
        self, metadata_client, mock_http_client, mock_rpc_methods, mock_session
    ):
        mock_http_client.request.side_effect = serve()

        result = await metadata_client.get_asset_metadata(mock_session, [KNOWN])

        assert result == {
            KNOWN: AssetMetadata(KNOWN, "Known Token", "KNW", "https://img/knw.png")
        }
        mock_rpc_methods.get_asset.assert_not_called()

    @pytest.mark.asyncio
    async def test_every_requested_id_is_present(
        self, metadata_client, mock_http_client, mock_session
    ):
        mock_http_client.request.side_effect = serve()

        result = await metadata_client.get_asset_metadata(mock_session, [KNOWN, UNKNOWN, KNOWN])

        assert set(result) == {KNOWN, UNKNOWN}
        assert result[UNKNOWN] == AssetMetadata(UNKNOWN)

    @pytest.mark.asyncio
    async def test_token_list_cached(self, metadata_client, mock_http_client, mock_session):
        """Test that the token list is loaded once within its TTL."""
        mock_http_client.request.side_effect = serve()

        await metadata_client.get_asset_metadata(mock_session, [KNOWN])
        await metadata_client.get_asset_metadata(mock_session, [KNOWN])

        assert mock_http_client.request.call_count == 1

    @pytest.mark.asyncio
    async def test_invalidate_reloads(self, metadata_client, mock_http_client, mock_session):
        mock_http_client.request.side_effect = serve()

        await metadata_client.get_asset_metadata(mock_session, [KNOWN])
        metadata_client.invalidate()
        await metadata_client.get_asset_metadata(mock_session, [KNOWN])

        assert mock_http_client.request.call_count == 2

    @pytest.mark.asyncio
    async def test_token_list_unavailable(
        self, metadata_client, mock_http_client, mock_rpc_methods, mock_session
    ):
        """Test that a failed token list degrades to stubs."""
        mock_http_client.request.side_effect = serve(token_list=HttpClientError("down"))

        result = await metadata_client.get_asset_metadata(mock_session, [KNOWN, UNKNOWN])

        assert result == {KNOWN: AssetMetadata(KNOWN), UNKNOWN: AssetMetadata(UNKNOWN)}
        assert mock_rpc_methods.get_asset.call_count == 2


class TestAssetLookup:
    """Test the DAS fallback for incomplete entries."""

    @pytest.mark.asyncio
    async def test_fills_missing_logo(
        self, metadata_client, mock_http_client, mock_rpc_methods, mock_session
    ):
        mock_http_client.request.side_effect = serve()
        mock_rpc_methods.get_asset.return_value = {
            "content": {
                "metadata": {"name": "On-chain Name", "symbol": "OCN"},
                "links": {"image": "https://img/prt.png"},
            }
        }

        result = await metadata_client.get_asset_metadata(mock_session, [PARTIAL])

        # Token list values win; DAS only fills gaps
        assert result[PARTIAL] == AssetMetadata(
            PARTIAL, "Partial Token", "PRT", "https://img/prt.png"
        )

    @pytest.mark.asyncio
    async def test_off_chain_json(
        self, metadata_client, mock_http_client, mock_rpc_methods, mock_session
    ):
        mock_http_client.request.side_effect = serve(
            off_chain={"name": "Off Chain", "symbol": "OFF", "image": "https://img/off.png"}
        )
        mock_rpc_methods.get_asset.return_value = {"content": {"json_uri": JSON_URI}}

        result = await metadata_client.get_asset_metadata(mock_session, [UNKNOWN])

        assert result[UNKNOWN] == AssetMetadata(UNKNOWN, "Off Chain", "OFF", "https://img/off.png")

    @pytest.mark.asyncio
    async def test_off_chain_json_unavailable(
        self, metadata_client, mock_http_client, mock_rpc_methods, mock_session
    ):
        mock_http_client.request.side_effect = serve()
        mock_rpc_methods.get_asset.return_value = {
            "content": {"json_uri": JSON_URI, "metadata": {"symbol": "ONL"}}
        }

        result = await metadata_client.get_asset_metadata(mock_session, [UNKNOWN])

        assert result[UNKNOWN] == AssetMetadata(UNKNOWN, symbol="ONL")

    @pytest.mark.asyncio
    async def test_lookup_exception_degrades_to_stub(
        self, metadata_client, mock_http_client, mock_rpc_methods, mock_session
    ):
        mock_http_client.request.side_effect = serve()
        mock_rpc_methods.get_asset.side_effect = RuntimeError("boom")

        result = await metadata_client.get_asset_metadata(mock_session, [PARTIAL, UNKNOWN])

        assert result[PARTIAL] == AssetMetadata(PARTIAL, "Partial Token", "PRT")
        assert result[UNKNOWN] == AssetMetadata(UNKNOWN)
