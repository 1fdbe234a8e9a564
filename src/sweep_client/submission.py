"""
Submission driver.

Binds a built batch to a fresh blockhash, hands it to the signer, sends it
once and waits for confirmation. Nothing is retried: on any failure the batch
is discarded and the caller rebuilds from a fresh snapshot, since the
blockhash of the failed attempt may already have expired.

Example usage:
    async with SweepClient.from_env() as client:
        batch = await client.build_batch(owner, plan, value_recipient, asset_recipient)
        result = await client.submit_batch(batch, KeypairSigner(keypair))
        print(f"Confirmed: {result.signature}")
"""

import asyncio
import logging
from typing import Any, Dict, Protocol

from aiohttp import ClientSession
from solders.keypair import Keypair
from solders.signature import Signature
from solders.transaction import Transaction

from .constants import (
    DEFAULT_COMMITMENT,
    DEFAULT_CONFIRM_POLL_INTERVAL,
    DEFAULT_CONFIRM_TIMEOUT,
)
from .exceptions import DependencyUnavailable, SignerRejected, SubmissionFailed
from .models.batch import Batch
from .models.submission import SubmissionResult
from .rpc_methods import RpcMethods

logger = logging.getLogger(__name__)

COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}


class Signer(Protocol):
    """Anything that can sign a transaction for the fee payer, e.g. a wallet adapter."""

    async def sign_transaction(self, transaction: Transaction) -> Transaction: ...


class KeypairSigner:
    """Signs with a keypair the caller already holds in memory."""

    def __init__(self, keypair: Keypair):
        self._keypair = keypair

    @property
    def pubkey(self) -> str:
        return str(self._keypair.pubkey())

    async def sign_transaction(self, transaction: Transaction) -> Transaction:
        message = transaction.message
        return Transaction([self._keypair], message, message.recent_blockhash)


class SubmissionDriver:
    """Signs, sends and confirms batches."""

    def __init__(
        self,
        rpc_methods: RpcMethods,
        commitment: str = DEFAULT_COMMITMENT,
        confirm_timeout: float = DEFAULT_CONFIRM_TIMEOUT,
        poll_interval: float = DEFAULT_CONFIRM_POLL_INTERVAL,
    ):
        self._rpc_methods = rpc_methods
        self._commitment = commitment
        self._confirm_timeout = confirm_timeout
        self._poll_interval = poll_interval

    async def submit(self, session: ClientSession, batch: Batch, signer: Signer) -> SubmissionResult:
        """
        Sign, send and confirm a batch.

        Args:
            session: aiohttp session
            batch: Batch to submit
            signer: Signer for the batch's fee payer

        Returns:
            SubmissionResult once the configured commitment is reached

        Raises:
            SignerRejected: If the signer fails or returns an unusable transaction
            SubmissionFailed: If sending or confirming fails
        """
        try:
            blockhash, last_valid_block_height = await self._rpc_methods.get_latest_blockhash(session)
        except DependencyUnavailable as e:
            raise SubmissionFailed(f"Could not fetch a recent blockhash: {e}") from e

        unsigned = batch.to_unsigned_transaction(blockhash)
        signed = await self._sign(unsigned, signer)

        try:
            signature = await self._rpc_methods.send_transaction(session, signed)
        except DependencyUnavailable as e:
            logger.error(f"Transaction rejected: {e}")
            raise SubmissionFailed(f"Transaction rejected: {e}") from e

        logger.info(f"Transaction sent: {signature} ({len(batch)} operations)")
        status = await self._await_confirmation(session, signature, last_valid_block_height)
        logger.info(f"Transaction confirmed: {signature} ({status.get('confirmationStatus')})")

        return SubmissionResult(
            signature=signature,
            blockhash=str(blockhash),
            confirmation_status=str(status.get("confirmationStatus")),
            slot=status.get("slot"),
        )

    async def _sign(self, unsigned: Transaction, signer: Signer) -> Transaction:
        try:
            signed = await signer.sign_transaction(unsigned)
        except SignerRejected:
            raise
        except Exception as e:
            raise SignerRejected(f"Signer failed: {e}") from e

        if signed is None:
            raise SignerRejected("Signer declined the transaction")
        if signed.message != unsigned.message:
            raise SignerRejected("Signer returned a transaction with a different message")
        if any(signature == Signature.default() for signature in signed.signatures):
            raise SignerRejected("Signer returned a transaction that is not fully signed")
        return signed

    async def _await_confirmation(
        self, session: ClientSession, signature: str, last_valid_block_height: int
    ) -> Dict[str, Any]:
        """Poll until the commitment is reached, the transaction fails, or it can no longer land."""
        target = COMMITMENT_RANK[self._commitment]
        deadline = asyncio.get_event_loop().time() + self._confirm_timeout

        while True:
            try:
                status = await self._rpc_methods.get_signature_status(session, signature)
                if status:
                    if status.get("err"):
                        raise SubmissionFailed(
                            f"Transaction {signature} failed: {status['err']}", signature
                        )
                    level = status.get("confirmationStatus")
                    if COMMITMENT_RANK.get(level, -1) >= target:
                        return status

                block_height = await self._rpc_methods.get_block_height(session)
            except DependencyUnavailable as e:
                raise SubmissionFailed(
                    f"Could not confirm transaction {signature}: {e}", signature
                ) from e

            if block_height > last_valid_block_height:
                raise SubmissionFailed(
                    f"Blockhash expired before transaction {signature} was confirmed", signature
                )
            if asyncio.get_event_loop().time() >= deadline:
                raise SubmissionFailed(
                    f"Timed out waiting for confirmation of {signature}", signature
                )

            await asyncio.sleep(self._poll_interval)
