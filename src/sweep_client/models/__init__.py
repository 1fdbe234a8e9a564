"""
Data models for the sweep client.

This package contains all data structures used throughout the sweep client,
following the state-first principle with immutable data structures.
"""

from .config import SweepConfig, RetryConfig
from .holdings import Holding, AssetRef, AssetMetadata, WalletSnapshot
from .actions import ActionChoice, ActionPlan, EffectiveAction, NO_ACTION
from .batch import Batch, Operation, OperationKind
from .submission import SubmissionResult

__all__ = [
    # Configuration
    "SweepConfig",
    "RetryConfig",
    # Holdings
    "Holding",
    "AssetRef",
    "AssetMetadata",
    "WalletSnapshot",
    # Actions
    "ActionChoice",
    "ActionPlan",
    "EffectiveAction",
    "NO_ACTION",
    # Batch
    "Batch",
    "Operation",
    "OperationKind",
    # Submission
    "SubmissionResult",
]
