"""
Pipeline — the ROP pipeline orchestrating a pruning run.

All I/O is injected via ports (Protocol interfaces). Stages are connected
with flat_map, forming a railway:

  ensure CA offline
    → load(CA cert, CA key, CRL file)
      → prune_store: dedup, and resign only if duplicates were found
        → write (only in DIRTY state)
          → PruneReport

Any failing stage short-circuits the rest: nothing is written unless every
stage before the writer succeeded.
"""

from __future__ import annotations

from dataclasses import replace

import structlog

from crl_pruner.domain.dedup import prune_crls
from crl_pruner.domain.models import (
    CrlStore,
    PruneOutcome,
    PruneReport,
    PruneState,
)
from crl_pruner.domain.ports import (
    CrlLoader,
    CrlSigner,
    CrlWriter,
    ServerStatusChecker,
)
from crl_pruner.railway import ErrorCode
from crl_pruner.railway.result import Result

log = structlog.get_logger()


def prune_store(store: CrlStore, signer: CrlSigner) -> PruneOutcome:
    """
    Deduplicate the prunable CRLs of ``store`` and re-sign them if needed.

    State machine, terminal per run:
      - CLEAN: no duplicates anywhere; the store is returned as given and
        the signer is never called.
      - DIRTY: at least one duplicate across all CRLs; every prunable CRL is
        re-signed (CRL number + 1) and persistence is required.
    """
    pruned, stats = prune_crls(store.prunable_crls())
    if stats.duplicates_removed == 0:
        return PruneOutcome(state=PruneState.CLEAN, store=store, stats=stats)

    resigned = signer.resign(pruned, store.key)
    return PruneOutcome(
        state=PruneState.DIRTY,
        store=store.with_prunable_replaced(resigned),
        stats=stats,
    )


def _ensure_offline(status_checker: ServerStatusChecker) -> Result[bool]:
    return Result.success(status_checker).ensure(
        lambda checker: not checker.is_server_online(),
        ErrorCode.SERVER_ONLINE_ERROR,
        "The CA service is running; stop it before pruning the CRL",
    ).map(lambda _: True)


def _persist(outcome: PruneOutcome, writer: CrlWriter) -> Result[PruneReport]:
    """Write the CRL file in DIRTY state; CLEAN runs write nothing."""
    report = PruneReport(
        state=outcome.state,
        certificates_found=outcome.stats.total_entries,
        duplicates_removed=outcome.stats.duplicates_removed,
    )
    if not outcome.persistence_required:
        return Result.success(report)

    return writer.write(outcome.store.crls).map(lambda size: replace(report, bytes_written=size))


def _log_found(outcome: PruneOutcome) -> None:
    total = outcome.stats.total_entries
    log.info(
        "pipeline.certificates_found",
        message=f"Total number of certificates found in the CRL is: {total}.",
        count=total,
    )


def _log_result(report: PruneReport) -> None:
    if report.state is PruneState.DIRTY:
        log.info(
            "pipeline.duplicates_removed",
            message=f"Removed {report.duplicates_removed} duplicated certs from the CRL.",
            count=report.duplicates_removed,
        )
    else:
        log.info("pipeline.no_duplicates", message="No duplicate revocations found in the CRL.")


def run_pipeline(
    status_checker: ServerStatusChecker,
    loader: CrlLoader,
    signer: CrlSigner,
    writer: CrlWriter,
) -> Result[PruneReport]:
    """
    Execute a full pruning run.

    Flow:
      1. Refuse to run while the CA service answers (SERVER_ONLINE_ERROR)
      2. Load CA material and CRLs (LOAD_ERROR)
      3. Deduplicate; re-sign only when duplicates were removed
      4. Persist the CRL file when re-signed (PERSISTENCE_ERROR)

    Returns Result[PruneReport] on success, or the failure of the first
    failing stage.
    """
    return (
        _ensure_offline(status_checker)
        .flat_map(lambda _: loader.load())
        .map(lambda store: prune_store(store, signer))
        .peek(_log_found)
        .flat_map(lambda outcome: _persist(outcome, writer))
        .peek(_log_result)
    )
