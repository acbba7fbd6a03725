"""
Execution contexts — separate WHAT (pure logic) from HOW (side effects).

A pipeline describes what happens and returns Result[T]; the context
decides how it runs. LoggingExecutionContext adds start/finish logging with
timing and turns any exception that escapes the pipeline into a
TECHNICAL_ERROR failure, so the CLI always receives a Result.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol, TypeVar, runtime_checkable

import structlog

from crl_pruner.railway.failure import ErrorCode, FailureDescription
from crl_pruner.railway.result import Failure, Result

T = TypeVar("T")
log = structlog.get_logger()


@runtime_checkable
class ExecutionContext(Protocol):
    """Anything that can run a Result-returning computation."""

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]: ...


class NoOpExecutionContext:
    """Passthrough execution context — runs the computation as is."""

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        return computation()


class LoggingExecutionContext:
    """
    Execution context that logs entry, exit, duration, and result state.

    Wraps another context (decorator pattern) to add observability.

        ctx = LoggingExecutionContext(operation="CrlPrune")
        result = ctx.execute(pipeline_fn)
    """

    def __init__(
        self,
        inner: ExecutionContext | None = None,
        operation: str = "unknown",
    ) -> None:
        self._inner = inner or NoOpExecutionContext()
        self._operation = operation

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        log.debug("execution.started", operation=self._operation)
        start = time.monotonic()

        try:
            result = self._inner.execute(computation)
        except Exception as e:
            elapsed = time.monotonic() - start
            log.error(
                "execution.crashed",
                operation=self._operation,
                elapsed_seconds=round(elapsed, 3),
                error=str(e),
            )
            return Failure(
                FailureDescription(
                    ErrorCode.TECHNICAL_ERROR,
                    f"Execution failed: {e}",
                    e,
                )
            )

        elapsed = time.monotonic() - start
        log.debug(
            "execution.completed",
            operation=self._operation,
            elapsed_seconds=round(elapsed, 3),
            state="SUCCESS" if result.is_success() else "FAILURE",
        )
        return result
