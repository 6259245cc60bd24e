"""
Exception hierarchy for the MiniMe proofs toolkit.

Exception Categories:
- RetryableException: Transient failures that may succeed on retry (RPC, network)
- NonRetryableException: Permanent failures that won't benefit from retry (bad data)
- ConfigurationException: Startup/config errors that prevent operation
- OperationCancelled: The caller cancelled the operation or its deadline passed

Domain exceptions are categorized:
- RemoteReadFailure -> RetryableException (storage/contract/RPC call failed)
- MetadataUnavailable -> RemoteReadFailure (decimals or total supply unreadable)
- SlotNotFound, CheckpointNotFound -> NonRetryableException (search exhausted)
- InvariantViolation -> NonRetryableException (unexpected storage layout)
- ProofVerificationError -> NonRetryableException (proof rejected)
"""

from typing import Any, Dict, Optional


class RetryableException(Exception):
    """
    Base class for exceptions that may succeed on retry.

    Use for transient failures like:
    - RPC timeouts
    - Rate limiting
    - Temporary network issues
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class NonRetryableException(Exception):
    """
    Base class for exceptions that won't benefit from retry.

    Use for permanent failures like:
    - Invalid input data
    - Exhausted searches
    - Storage layout violations
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ConfigurationException(NonRetryableException):
    """
    Exception for configuration/startup errors.

    Use when:
    - Required environment variables are missing
    - Invalid configuration values
    - Missing required resources
    """

    pass


class RemoteReadFailure(RetryableException):
    """
    A storage, contract or RPC call failed.

    Surfaced verbatim to the caller, except during slot discovery where a
    failed checkpoint read only disqualifies the current candidate.
    """

    pass


class MetadataUnavailable(RemoteReadFailure):
    """Token decimals or total supply could not be read."""

    pass


class SlotNotFound(NonRetryableException):
    """Discovery tried every candidate slot without a balance match."""

    pass


class CheckpointNotFound(NonRetryableException):
    """No checkpoint brackets the requested block."""

    pass


class InvariantViolation(NonRetryableException):
    """
    A position expected to be empty (or newer than the target block)
    decoded as something else.

    Indicates a corrupted or unsupported storage layout.
    """

    pass


class ProofVerificationError(NonRetryableException):
    """A storage proof does not prove the claimed balance."""

    pass


class OperationCancelled(Exception):
    """The caller cancelled the operation or its deadline expired."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}
