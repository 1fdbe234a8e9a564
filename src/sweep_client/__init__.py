"""
Sweep Client - Python client for sweeping a Solana wallet.

This package builds a single atomic transaction that moves a wallet's native
balance and token holdings to new owners, burns unwanted tokens and closes
emptied token accounts, and resolves best-effort USD prices for display.
"""

from .client import SweepClient, create_sweep_client
from .batch import build_batch, native_send_amount
from .actions import effective_action, resolve_actions
from .prices import PriceResolver, merge_quotes
from .submission import KeypairSigner, Signer, SubmissionDriver
from .exceptions import (
    SweepError,
    ValidationError,
    EmptyBatch,
    DependencyUnavailable,
    RpcError,
    SignerRejected,
    SubmissionFailed,
)
from .models import (
    # Configuration
    SweepConfig,
    RetryConfig,
    # Holdings
    Holding,
    AssetRef,
    AssetMetadata,
    WalletSnapshot,
    # Actions
    ActionChoice,
    ActionPlan,
    EffectiveAction,
    # Batch
    Batch,
    Operation,
    OperationKind,
    SubmissionResult,
)

__all__ = [
    # Main Client
    "SweepClient",
    "create_sweep_client",
    "SweepConfig",
    "RetryConfig",
    # Core
    "build_batch",
    "native_send_amount",
    "effective_action",
    "resolve_actions",
    "PriceResolver",
    "merge_quotes",
    # Submission
    "Signer",
    "KeypairSigner",
    "SubmissionDriver",
    "SubmissionResult",
    # Models
    "Holding",
    "AssetRef",
    "AssetMetadata",
    "WalletSnapshot",
    "ActionChoice",
    "ActionPlan",
    "EffectiveAction",
    "Batch",
    "Operation",
    "OperationKind",
    # Exceptions
    "SweepError",
    "ValidationError",
    "EmptyBatch",
    "DependencyUnavailable",
    "RpcError",
    "SignerRejected",
    "SubmissionFailed",
]
