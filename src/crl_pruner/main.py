"""
Application entry point — command line, wiring, and exit status.

Composition root: loads settings, creates concrete adapters and runs the
pipeline inside a LoggingExecutionContext. This is the ONLY place where
concrete adapter classes are instantiated; everything else depends on the
Protocol ports.

Exit status: 0 when the run completed (with or without duplicates),
1 on any failure. Nothing is written on failure.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
import structlog
from pydantic import ValidationError

from crl_pruner import __version__
from crl_pruner.adapters.crl_signer import CrlResigner
from crl_pruner.adapters.filesystem import FileCrlLoader, FileCrlWriter
from crl_pruner.adapters.http_client import HttpServerStatusChecker
from crl_pruner.config import AppSettings
from crl_pruner.domain.models import PruneReport
from crl_pruner.pipeline import run_pipeline
from crl_pruner.railway import ErrorCode, LoggingExecutionContext
from crl_pruner.railway.result import Result


def configure_structlog(log_level: str = "INFO") -> None:
    """
    Configure structlog for human-readable console logging.

    Unknown level names fall back to INFO.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def load_settings(config_path: Path | None) -> Result[AppSettings]:
    """
    Load settings from the environment, plus ``config_path`` as env file if given.

    A missing config file or invalid settings is a CONFIGURATION_ERROR.
    """
    if config_path is not None and not config_path.is_file():
        return Result.failure(
            ErrorCode.CONFIGURATION_ERROR,
            f"Config file {config_path} does not exist or is not a file",
        )
    try:
        return Result.success(AppSettings(_env_file=config_path))  # type: ignore[call-arg]
    except (ValidationError, OSError, ValueError) as e:
        return Result.failure(ErrorCode.CONFIGURATION_ERROR, "Invalid configuration", e)


def build_pipeline(settings: AppSettings) -> Result[PruneReport]:
    """Instantiate the adapters from settings and run the pipeline once."""
    cacert, cakey, cacrl = settings.ca.paths()
    status_checker = HttpServerStatusChecker(
        status_url=settings.server.status_url,
        timeout=settings.http_timeout_seconds,
        verify_tls=settings.server.verify_tls,
    )
    loader = FileCrlLoader(cacert_path=cacert, cakey_path=cakey, cacrl_path=cacrl)
    writer = FileCrlWriter(cacrl_path=cacrl, mode=settings.crl_file_mode)
    return run_pipeline(
        status_checker=status_checker,
        loader=loader,
        signer=CrlResigner(),
        writer=writer,
    )


def run(config_path: Path | None = None, verbose: bool = False) -> int:
    """Run one pruning pass and return the process exit status."""
    settings_result = load_settings(config_path)
    if settings_result.is_failure():
        error = settings_result.error()
        print(f"FATAL: {error.detail()}", file=sys.stderr)  # noqa: T201
        return 1

    settings = settings_result.value()
    configure_structlog("DEBUG" if verbose else settings.log_level)
    log = structlog.get_logger()

    cacert, cakey, cacrl = settings.ca.paths()
    log.debug(
        "app.starting",
        version=__version__,
        cacert=str(cacert),
        cakey=str(cakey),
        cacrl=str(cacrl),
        status_url=settings.server.status_url,
    )

    ctx = LoggingExecutionContext(operation="CrlPrune")
    result = ctx.execute(lambda: build_pipeline(settings))
    if result.is_success():
        return 0

    error = result.error()
    log.error("app.failed", code=error.code.value, error=error.detail())
    print(f"Error: {error.detail()}", file=sys.stderr)  # noqa: T201
    return 1


@click.command(name="crl-pruner")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to an env-format settings file (CA__CACRL=..., SERVER__STATUS_URL=...).",
)
@click.option("--verbose", is_flag=True, help="Log every pruned entry (debug level).")
@click.version_option(version=__version__, prog_name="crl-pruner")
def cli(config_path: Path | None, verbose: bool) -> None:
    """Prune the CA's CRL of duplicated revocations and sign it again.

    Only CRLs signed by the configured CA key are pruned. The CA service must
    be stopped while pruning.
    """
    sys.exit(run(config_path=config_path, verbose=verbose))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
