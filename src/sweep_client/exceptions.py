"""
Exception hierarchy for the sweep client.

Build-time problems (ValidationError, EmptyBatch) are raised before any
network call. DependencyUnavailable is raised by the service layers and is
caught by display-only consumers. SignerRejected and SubmissionFailed end a
submission; the batch must be rebuilt from scratch afterwards.
"""

from typing import Any, Optional


class SweepError(Exception):
    """Base exception for the sweep client."""
    pass


class ValidationError(SweepError):
    """Raised when batch inputs are malformed."""
    pass


class EmptyBatch(ValidationError):
    """Raised when no operation would be produced."""
    pass


class DependencyUnavailable(SweepError):
    """Raised when an external service cannot be reached or answers badly."""

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}")
        self.service = service


class RpcError(DependencyUnavailable):
    """JSON-RPC error object returned by the ledger node."""

    def __init__(self, method: str, code: Optional[int], message: str, data: Any = None):
        super().__init__("rpc", f"{method} failed ({code}): {message}")
        self.method = method
        self.code = code
        self.rpc_message = message
        self.data = data


class SignerRejected(SweepError):
    """Raised when the signer declines or returns an unusable transaction."""
    pass


class SubmissionFailed(SweepError):
    """Raised when a signed transaction could not be landed."""

    def __init__(self, message: str, signature: Optional[str] = None):
        super().__init__(message)
        self.signature = signature
