"""
Railway-Oriented Programming helpers used across crl_pruner.

    from crl_pruner.railway import ErrorCode, Result

    def load() -> Result[CrlStore]:
        return Result.from_computation(_read, ErrorCode.LOAD_ERROR, "Could not load CRL")
"""

from crl_pruner.railway.assertions import ResultAssertions
from crl_pruner.railway.execution import (
    ExecutionContext,
    LoggingExecutionContext,
    NoOpExecutionContext,
)
from crl_pruner.railway.failure import ErrorCode, FailureDescription
from crl_pruner.railway.result import Failure, Result, Success

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ExecutionContext",
    "NoOpExecutionContext",
    "LoggingExecutionContext",
    "ResultAssertions",
]
