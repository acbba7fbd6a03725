"""
Failure description — structured error information for the failure track.

Every fatal condition of a pruning run is one ErrorCode. The CLI maps any
failure to a non-zero exit status; the code tells the operator which
precondition or stage stopped the run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique


@unique
class ErrorCode(Enum):
    """Error codes for the failure track of a pruning run."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """Missing or invalid settings, unreadable --config file."""

    SERVER_ONLINE_ERROR = "SERVER_ONLINE_ERROR"
    """The CA service answered; pruning while it may revoke would lose updates."""

    LOAD_ERROR = "LOAD_ERROR"
    """CA certificate, key or CRL missing, unreadable, unparseable or mismatched."""

    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    """The pruned CRL file could not be written."""

    TECHNICAL_ERROR = "TECHNICAL_ERROR"
    """Unexpected exception escaping a stage."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor carrying error code, message, optional exception, and timestamp.

    >>> desc = FailureDescription(ErrorCode.LOAD_ERROR, "CRL file not found")
    >>> desc.code
    <ErrorCode.LOAD_ERROR: 'LOAD_ERROR'>
    """

    code: ErrorCode
    message: str
    exception: BaseException | None = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def detail(self) -> str:
        """Message followed by the underlying exception text, if any."""
        if self.exception is None:
            return self.message
        return f"{self.message}: {self.exception}"
