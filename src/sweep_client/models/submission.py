"""
Submission models for the sweep client.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of a confirmed submission.

    Attributes:
        signature: Transaction signature (base58)
        blockhash: Blockhash the transaction was bound to
        confirmation_status: Commitment level that was reached
        slot: Slot the transaction landed in, when reported
    """
    signature: str
    blockhash: str
    confirmation_status: str
    slot: Optional[int] = None
