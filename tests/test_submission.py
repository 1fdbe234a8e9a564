# -*- coding: utf-8 -*-
"""
Tests for the submission driver.
"""

import pytest
from solders.hash import Hash
from solders.message import Message
from solders.signature import Signature
from solders.transaction import Transaction
from unittest.mock import AsyncMock, Mock

from sweep_client.batch import build_batch
from sweep_client.exceptions import DependencyUnavailable, SignerRejected, SubmissionFailed
from sweep_client.rpc_methods import RpcMethods
from sweep_client.submission import KeypairSigner, SubmissionDriver

from conftest import make_keypair

SIGNATURE = "5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnbJLgp8uirBgmQpjKhoR4tjF3ZpRzrFmBV6UjKdiSZkQUW"
CONFIRMED = {"slot": 42, "confirmations": 1, "err": None, "confirmationStatus": "confirmed"}


@pytest.fixture
def batch(sample_holdings, sweep_plan, value_recipient, asset_recipient, owner):
    return build_batch(
        sample_holdings,
        sweep_plan,
        value_recipient=value_recipient,
        asset_recipient=asset_recipient,
        fee_payer=owner,
        native_balance=100000,
        fee_buffer=8000,
    )


@pytest.fixture
def signer(owner_keypair):
    return KeypairSigner(owner_keypair)


@pytest.fixture
def mock_rpc_methods():
    rpc_methods = Mock(spec=RpcMethods)
    rpc_methods.get_latest_blockhash = AsyncMock(return_value=(Hash.default(), 500))
    rpc_methods.send_transaction = AsyncMock(return_value=SIGNATURE)
    rpc_methods.get_signature_status = AsyncMock(return_value=CONFIRMED)
    rpc_methods.get_block_height = AsyncMock(return_value=400)
    return rpc_methods


@pytest.fixture
def driver(mock_rpc_methods):
    return SubmissionDriver(
        mock_rpc_methods, commitment="confirmed", confirm_timeout=1.0, poll_interval=0.001
    )


class TestKeypairSigner:
    """Test the in-memory keypair signer."""

    @pytest.mark.asyncio
    async def test_signs_message(self, batch, signer, owner):
        unsigned = batch.to_unsigned_transaction(Hash.default())

        signed = await signer.sign_transaction(unsigned)

        assert signer.pubkey == owner
        assert signed.message == unsigned.message
        assert signed.signatures[0] != Signature.default()
        signed.verify()


class TestSubmit:
    """Test the sign, send and confirm sequence."""

    @pytest.mark.asyncio
    async def test_success(self, driver, batch, signer, mock_rpc_methods, mock_session):
        result = await driver.submit(mock_session, batch, signer)

        assert result.signature == SIGNATURE
        assert result.blockhash == str(Hash.default())
        assert result.confirmation_status == "confirmed"
        assert result.slot == 42

        sent = mock_rpc_methods.send_transaction.call_args.args[1]
        assert sent.message == batch.to_message(Hash.default())
        mock_rpc_methods.send_transaction.assert_called_once()

    @pytest.mark.asyncio
    async def test_polls_until_confirmed(self, driver, batch, signer, mock_rpc_methods, mock_session):
        mock_rpc_methods.get_signature_status.side_effect = [
            None,
            {"slot": 42, "err": None, "confirmationStatus": "processed"},
            CONFIRMED,
        ]

        result = await driver.submit(mock_session, batch, signer)

        assert result.confirmation_status == "confirmed"
        assert mock_rpc_methods.get_signature_status.call_count == 3

    @pytest.mark.asyncio
    async def test_finalized_satisfies_confirmed(
        self, driver, batch, signer, mock_rpc_methods, mock_session
    ):
        mock_rpc_methods.get_signature_status.return_value = {
            "slot": 42, "err": None, "confirmationStatus": "finalized"
        }

        result = await driver.submit(mock_session, batch, signer)

        assert result.confirmation_status == "finalized"


class TestSignerFailures:
    """Test that signer problems stop the submission before sending."""

    @pytest.mark.asyncio
    async def test_signer_raises(self, driver, batch, mock_rpc_methods, mock_session):
        signer = Mock()
        signer.sign_transaction = AsyncMock(side_effect=RuntimeError("User rejected the request"))

        with pytest.raises(SignerRejected, match="User rejected"):
            await driver.submit(mock_session, batch, signer)

        mock_rpc_methods.send_transaction.assert_not_called()

    @pytest.mark.asyncio
    async def test_signer_declines(self, driver, batch, mock_rpc_methods, mock_session):
        signer = Mock()
        signer.sign_transaction = AsyncMock(return_value=None)

        with pytest.raises(SignerRejected):
            await driver.submit(mock_session, batch, signer)

        mock_rpc_methods.send_transaction.assert_not_called()

    @pytest.mark.asyncio
    async def test_unsigned_transaction_returned(self, driver, batch, mock_rpc_methods, mock_session):
        signer = Mock()
        signer.sign_transaction = AsyncMock(side_effect=lambda transaction: transaction)

        with pytest.raises(SignerRejected, match="not fully signed"):
            await driver.submit(mock_session, batch, signer)

    @pytest.mark.asyncio
    async def test_different_message_returned(self, driver, batch, mock_rpc_methods, mock_session):
        other = make_keypair(99)
        signer = Mock()
        signer.sign_transaction = AsyncMock(
            side_effect=lambda transaction: signed_unrelated_transaction(other)
        )

        with pytest.raises(SignerRejected, match="different message"):
            await driver.submit(mock_session, batch, signer)


def signed_unrelated_transaction(keypair):
    """A correctly signed transaction for an unrelated message."""
    message = Message.new_with_blockhash([], keypair.pubkey(), Hash.default())
    return Transaction([keypair], message, Hash.default())


class TestSubmissionFailures:
    """Test that network and ledger failures surface as SubmissionFailed."""

    @pytest.mark.asyncio
    async def test_blockhash_unavailable(self, driver, batch, signer, mock_rpc_methods, mock_session):
        mock_rpc_methods.get_latest_blockhash.side_effect = DependencyUnavailable("rpc", "down")

        with pytest.raises(SubmissionFailed):
            await driver.submit(mock_session, batch, signer)

    @pytest.mark.asyncio
    async def test_send_rejected(self, driver, batch, signer, mock_rpc_methods, mock_session):
        mock_rpc_methods.send_transaction.side_effect = DependencyUnavailable(
            "rpc", "Transaction simulation failed"
        )

        with pytest.raises(SubmissionFailed, match="simulation failed") as exc_info:
            await driver.submit(mock_session, batch, signer)

        assert exc_info.value.signature is None
        mock_rpc_methods.send_transaction.assert_called_once()

    @pytest.mark.asyncio
    async def test_transaction_error(self, driver, batch, signer, mock_rpc_methods, mock_session):
        mock_rpc_methods.get_signature_status.return_value = {
            "slot": 42, "err": {"InstructionError": [3, {"Custom": 1}]}, "confirmationStatus": "confirmed"
        }

        with pytest.raises(SubmissionFailed) as exc_info:
            await driver.submit(mock_session, batch, signer)

        assert exc_info.value.signature == SIGNATURE

    @pytest.mark.asyncio
    async def test_blockhash_expired(self, driver, batch, signer, mock_rpc_methods, mock_session):
        mock_rpc_methods.get_signature_status.return_value = None
        mock_rpc_methods.get_block_height.return_value = 501

        with pytest.raises(SubmissionFailed, match="expired") as exc_info:
            await driver.submit(mock_session, batch, signer)

        assert exc_info.value.signature == SIGNATURE

    @pytest.mark.asyncio
    async def test_confirmation_timeout(self, mock_rpc_methods, batch, signer, mock_session):
        mock_rpc_methods.get_signature_status.return_value = None
        driver = SubmissionDriver(
            mock_rpc_methods, commitment="confirmed", confirm_timeout=0.01, poll_interval=0.005
        )

        with pytest.raises(SubmissionFailed, match="Timed out"):
            await driver.submit(mock_session, batch, signer)

        mock_rpc_methods.send_transaction.assert_called_once()

    @pytest.mark.asyncio
    async def test_status_lookup_unavailable(self, driver, batch, signer, mock_rpc_methods, mock_session):
        mock_rpc_methods.get_signature_status.side_effect = DependencyUnavailable("rpc", "down")

        with pytest.raises(SubmissionFailed) as exc_info:
            await driver.submit(mock_session, batch, signer)

        assert exc_info.value.signature == SIGNATURE
