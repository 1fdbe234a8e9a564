"""
Ledger RPC method implementations for the sweep client.

JSON-RPC 2.0 calls against a Solana node, organized by functional area.
Follows state-first design with pure functions for data transformation.
"""

import asyncio
import base64
import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from aiohttp import ClientSession
from solders.hash import Hash
from solders.transaction import Transaction

from .constants import (
    DEFAULT_COMMITMENT,
    MAX_MULTIPLE_ACCOUNTS,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)
from .exceptions import DependencyUnavailable, RpcError
from .http_client import HttpClient, HttpClientError
from .models.holdings import Holding
from .utils import chunk_list, safe_get

logger = logging.getLogger(__name__)

HOLDING_PROGRAMS = (TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID)


def parse_token_account(entry: Dict[str, Any], token_program: str) -> Optional[Holding]:
    """Build a Holding from a jsonParsed token account entry, None if malformed."""
    info = safe_get(entry, "account.data.parsed.info")
    if not isinstance(info, dict):
        return None

    token_amount = info.get("tokenAmount") or {}
    if not isinstance(token_amount, dict):
        logger.warning(f"Skipping token account {entry.get('pubkey')} with malformed tokenAmount")
        return None
    try:
        return Holding(
            account_address=str(entry["pubkey"]),
            asset_id=str(info["mint"]),
            raw_amount=int(token_amount.get("amount", "0")),
            decimals=int(token_amount.get("decimals", 0)),
            token_program=token_program,
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Skipping unparsable token account {entry.get('pubkey')}: {e}")
        return None


class RpcMethods:
    """Container for all ledger RPC method implementations."""

    def __init__(
        self,
        http_client: HttpClient,
        rpc_url: str,
        commitment: str = DEFAULT_COMMITMENT,
    ):
        """Initialize RPC methods with HTTP client and node URL."""
        self._http_client = http_client
        self._rpc_url = rpc_url
        self._commitment = commitment

    @property
    def commitment(self) -> str:
        return self._commitment

    async def call(
        self,
        session: ClientSession,
        method: str,
        params: Optional[Any] = None,
        retry: bool = True,
    ) -> Any:
        """
        Execute a JSON-RPC call and return its result.

        Raises:
            RpcError: If the node returns an error object
            DependencyUnavailable: If the node cannot be reached
        """
        payload: Dict[str, Any] = {"jsonrpc": "2.0", "id": 1, "method": method}
        if params is not None:
            payload["params"] = params

        try:
            response = await self._http_client.request(
                session, "POST", self._rpc_url, json_body=payload, retry=retry
            )
        except HttpClientError as e:
            raise DependencyUnavailable("rpc", f"{method} request failed: {e}") from e

        if not isinstance(response, dict):
            raise DependencyUnavailable("rpc", f"{method} returned a non-object response")

        error = response.get("error")
        if error:
            if isinstance(error, dict):
                raise RpcError(method, error.get("code"), str(error.get("message", "")), error.get("data"))
            raise RpcError(method, None, str(error))

        if "result" not in response:
            raise DependencyUnavailable("rpc", f"{method} response has no result")
        return response["result"]

    # Balances
    async def get_balance(self, session: ClientSession, address: str) -> int:
        """Native balance in lamports."""
        result = await self.call(session, "getBalance", [address, {"commitment": self._commitment}])
        return int(safe_get(result, "value", 0) or 0)

    async def get_holdings_by_owner(self, session: ClientSession, owner: str) -> List[Holding]:
        """
        Every token account owned by owner, across both token programs.

        Zero-balance accounts are kept so they can be closed. The list is
        sorted by display amount, largest first.
        """
        responses = await asyncio.gather(
            *(
                self.call(
                    session,
                    "getTokenAccountsByOwner",
                    [
                        owner,
                        {"programId": program_id},
                        {"encoding": "jsonParsed", "commitment": self._commitment},
                    ],
                )
                for program_id in HOLDING_PROGRAMS
            )
        )

        holdings: List[Holding] = []
        for program_id, result in zip(HOLDING_PROGRAMS, responses):
            for entry in safe_get(result, "value", []) or []:
                holding = parse_token_account(entry, program_id)
                if holding is not None:
                    holdings.append(holding)

        holdings.sort(key=lambda h: h.display_amount, reverse=True)
        return holdings

    # Accounts
    async def get_existing_accounts(
        self, session: ClientSession, addresses: Iterable[str]
    ) -> Set[str]:
        """Subset of addresses that currently exist on the ledger."""
        unique = list(dict.fromkeys(addresses))
        existing: Set[str] = set()

        for chunk in chunk_list(unique, MAX_MULTIPLE_ACCOUNTS):
            result = await self.call(
                session,
                "getMultipleAccounts",
                [chunk, {"encoding": "base64", "commitment": self._commitment}],
            )
            values = safe_get(result, "value", []) or []
            for address, info in zip(chunk, values):
                if info:
                    existing.add(address)

        return existing

    async def get_minimum_balance_for_rent_exemption(
        self, session: ClientSession, data_len: int
    ) -> int:
        result = await self.call(session, "getMinimumBalanceForRentExemption", [int(data_len)])
        return int(result or 0)

    # Transactions
    async def get_latest_blockhash(self, session: ClientSession) -> Tuple[Hash, int]:
        """Fresh blockhash and the last block height at which it is valid."""
        result = await self.call(session, "getLatestBlockhash", [{"commitment": self._commitment}])
        blockhash = safe_get(result, "value.blockhash")
        last_valid = safe_get(result, "value.lastValidBlockHeight")
        if not blockhash or last_valid is None:
            raise DependencyUnavailable("rpc", f"getLatestBlockhash returned {result!r}")
        return Hash.from_string(str(blockhash)), int(last_valid)

    async def get_block_height(self, session: ClientSession) -> int:
        result = await self.call(session, "getBlockHeight", [{"commitment": self._commitment}])
        return int(result)

    async def send_transaction(self, session: ClientSession, transaction: Transaction) -> str:
        """Send a signed transaction once, with preflight checks. Returns its signature."""
        encoded = base64.b64encode(bytes(transaction)).decode("utf-8")
        result = await self.call(
            session,
            "sendTransaction",
            [
                encoded,
                {
                    "encoding": "base64",
                    "skipPreflight": False,
                    "preflightCommitment": self._commitment,
                },
            ],
            retry=False,
        )
        if not result:
            raise DependencyUnavailable("rpc", "sendTransaction returned no signature")
        return str(result)

    async def get_signature_status(
        self, session: ClientSession, signature: str
    ) -> Optional[Dict[str, Any]]:
        """Status entry for a signature, None while the node has not seen it."""
        result = await self.call(
            session,
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": True}],
        )
        values = safe_get(result, "value", []) or [None]
        return values[0]

    # Digital asset metadata
    async def get_asset(self, session: ClientSession, asset_id: str) -> Optional[Dict[str, Any]]:
        """DAS getAsset lookup. Best-effort: failures return None."""
        try:
            result = await self.call(session, "getAsset", {"id": asset_id})
        except DependencyUnavailable as e:
            logger.debug(f"getAsset failed for {asset_id}: {e}")
            return None
        return result if isinstance(result, dict) else None

    # Health
    async def get_health(self, session: ClientSession) -> bool:
        try:
            return await self.call(session, "getHealth") == "ok"
        except DependencyUnavailable as e:
            logger.error(f"Health check failed: {e}")
            return False
