"""
Deduplicator — drop repeated revocations of the same serial number.

Domain layer — pure logic over Crl snapshots, no I/O besides debug tracing.

Tie-break policy: the first entry for a serial in list order is kept, later
ones are dropped, whatever their revocation times. Each CRL gets its own
"seen" set; a serial revoked in both a base and a delta CRL stays in both.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from crl_pruner.domain.models import Crl, CrlPruneStats, PruneStats, RevokedEntry

log = structlog.get_logger()


def prune_crl(crl: Crl) -> tuple[Crl, CrlPruneStats]:
    """
    Remove duplicate serials from one CRL.

    Returns the CRL itself when nothing was removed, otherwise an unsigned
    copy holding the kept entries in their original relative order.
    """
    log.debug("prune.crl_started", issuer=crl.issuer, entries=len(crl.revoked))

    seen: set[int] = set()
    kept: list[RevokedEntry] = []
    for entry in crl.revoked:
        if entry.serial_number in seen:
            log.debug(
                "prune.duplicate_removed",
                serial=entry.serial_number,
                revoked_at=entry.revocation_date.isoformat(),
            )
            continue
        seen.add(entry.serial_number)
        kept.append(entry)

    stats = CrlPruneStats(
        issuer=crl.issuer,
        total_entries=len(crl.revoked),
        duplicates_removed=len(crl.revoked) - len(kept),
    )
    if stats.duplicates_removed == 0:
        return crl, stats
    return crl.with_revoked(tuple(kept)), stats


def prune_crls(crls: Sequence[Crl]) -> tuple[list[Crl], PruneStats]:
    """
    Deduplicate every CRL independently.

    Returns the resulting CRLs (same order as given) and the accumulated
    counts: ``total_entries`` is the sum of the pre-filter lengths and
    ``duplicates_removed`` the sum of the drops.
    """
    pruned: list[Crl] = []
    per_crl: list[CrlPruneStats] = []
    for crl in crls:
        result, stats = prune_crl(crl)
        pruned.append(result)
        per_crl.append(stats)
    return pruned, PruneStats(per_crl=tuple(per_crl))
