# -*- coding: utf-8 -*-
"""
Shared fixtures and utilities for testing the sweep client.
"""

import pytest
from typing import List
from unittest.mock import AsyncMock, Mock

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from sweep_client.client import SweepClient
from sweep_client.constants import TOKEN_PROGRAM_ID
from sweep_client.http_client import HttpClient
from sweep_client.instructions import derive_receiving_account
from sweep_client.models import (
    ActionChoice,
    ActionPlan,
    Holding,
    RetryConfig,
    SweepConfig,
)


def make_keypair(seed: int) -> Keypair:
    """Deterministic keypair for a small integer seed."""
    return Keypair.from_seed(bytes([seed]) * 32)


def make_address(seed: int) -> str:
    """Deterministic, valid base58 address for a small integer seed."""
    return str(make_keypair(seed).pubkey())


def receiving_account_for(owner: str, mint: str, token_program: str = TOKEN_PROGRAM_ID) -> str:
    return str(
        derive_receiving_account(
            Pubkey.from_string(owner),
            Pubkey.from_string(mint),
            Pubkey.from_string(token_program),
        )
    )


# Addresses
@pytest.fixture
def owner_keypair() -> Keypair:
    return make_keypair(1)


@pytest.fixture
def owner(owner_keypair) -> str:
    return str(owner_keypair.pubkey())


@pytest.fixture
def value_recipient() -> str:
    return make_address(2)


@pytest.fixture
def asset_recipient() -> str:
    return make_address(3)


@pytest.fixture
def mint_a() -> str:
    return make_address(10)


@pytest.fixture
def mint_b() -> str:
    return make_address(11)


@pytest.fixture
def account_a() -> str:
    return make_address(20)


@pytest.fixture
def account_b() -> str:
    return make_address(21)


# Holdings and plans
@pytest.fixture
def empty_holding(account_a, mint_a) -> Holding:
    """Token account A: empty."""
    return Holding(account_address=account_a, asset_id=mint_a, raw_amount=0, decimals=6)


@pytest.fixture
def funded_holding(account_b, mint_b) -> Holding:
    """Token account B: 5.00 tokens with 2 decimals."""
    return Holding(account_address=account_b, asset_id=mint_b, raw_amount=500, decimals=2)


@pytest.fixture
def sample_holdings(empty_holding, funded_holding) -> List[Holding]:
    return [empty_holding, funded_holding]


@pytest.fixture
def sweep_plan(account_a, account_b) -> ActionPlan:
    """Close A; transfer then close B."""
    return ActionPlan(
        choices_by_account={
            account_a: ActionChoice(wants_close=True),
            account_b: ActionChoice(wants_transfer=True, wants_close=True),
        }
    )


# Configuration
@pytest.fixture
def sweep_config() -> SweepConfig:
    return SweepConfig(
        rpc_url="https://rpc.test.example.com",
        birdeye_api_key="test_birdeye_key",
        fee_buffer_lamports=8000,
        reserve_receiving_rent=False,
    )


@pytest.fixture
def retry_config() -> RetryConfig:
    return RetryConfig(max_retries=2, retry_delay=0.0, backoff_factor=1.0)


@pytest.fixture
def sweep_client(sweep_config) -> SweepClient:
    return SweepClient(sweep_config)


# Mocks
@pytest.fixture
def mock_session() -> Mock:
    return Mock()


@pytest.fixture
def mock_http_client() -> Mock:
    """HttpClient whose request coroutine is mocked."""
    http_client = Mock(spec=HttpClient)
    http_client.request = AsyncMock()
    return http_client
