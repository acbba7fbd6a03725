"""
Domain models — immutable snapshots of CRLs, revocation entries, and run results.

Every stage of a pruning run takes snapshots and returns new ones; nothing is
mutated in place. A Crl whose content changed but which has not been signed
again carries ``der=None`` and cannot be persisted.

Serial numbers and CRL numbers are plain Python ints (unbounded), matching the
DER INTEGER encoding they come from.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.ec import (
        EllipticCurvePrivateKey,
        EllipticCurvePublicKey,
    )
    from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

CRL_NUMBER_OID = "2.5.29.20"


@dataclass(frozen=True, slots=True)
class Extension:
    """
    A CRL or CRL-entry extension.

    ``value`` holds the DER encoding wrapped by the extnValue OCTET STRING
    (for the CRL number: a DER INTEGER).
    """

    oid: str
    value: bytes = field(repr=False)
    critical: bool = False


@dataclass(frozen=True, slots=True)
class RevokedEntry:
    """One revoked certificate: serial number, revocation time, entry extensions."""

    serial_number: int
    revocation_date: datetime
    extensions: tuple[Extension, ...] = ()


@dataclass(frozen=True, slots=True)
class Crl:
    """
    One Certificate Revocation List.

    ``issuer_der`` keeps the exact encoding of the issuer Name so a re-signed
    CRL still matches the CA certificate subject byte for byte.
    ``der`` is the signed encoding this snapshot corresponds to, or None when
    the snapshot was changed and still needs signing.
    """

    issuer: str
    issuer_der: bytes = field(repr=False)
    this_update: datetime
    next_update: datetime | None
    revoked: tuple[RevokedEntry, ...]
    extensions: tuple[Extension, ...]
    signature_algorithm: str
    signature: bytes = field(repr=False)
    der: bytes | None = field(default=None, repr=False)
    version: int | None = 1

    @property
    def is_signed(self) -> bool:
        return self.der is not None

    def with_revoked(self, revoked: tuple[RevokedEntry, ...]) -> Crl:
        """Return an unsigned copy carrying a different revocation list."""
        return replace(self, revoked=revoked, der=None)

    def with_extensions(self, extensions: tuple[Extension, ...]) -> Crl:
        """Return an unsigned copy carrying a different extension set."""
        return replace(self, extensions=extensions, der=None)


@dataclass(frozen=True, slots=True)
class CaKeyMaterial:
    """The CA private signing key. Supplied by the loader, never mutated."""

    private_key: RSAPrivateKey | EllipticCurvePrivateKey = field(repr=False)

    def public_key(self) -> RSAPublicKey | EllipticCurvePublicKey:
        return self.private_key.public_key()


@dataclass(frozen=True, slots=True)
class CrlStore:
    """
    Everything loaded for one run: the CRLs of the CRL file and the CA key.

    ``crls`` keeps file order. ``prunable`` holds the positions of the CRLs
    whose signature verifies against the key; only those are pruned, the
    others are written back untouched.
    """

    crls: tuple[Crl, ...]
    key: CaKeyMaterial
    prunable: frozenset[int] = frozenset()

    def prunable_crls(self) -> list[Crl]:
        return [crl for index, crl in enumerate(self.crls) if index in self.prunable]

    def with_prunable_replaced(self, updated: list[Crl]) -> CrlStore:
        """
        Return a store where the prunable CRLs are replaced, in order, by ``updated``.

        Raises ValueError if the number of replacements does not match.
        """
        positions = sorted(self.prunable)
        if len(updated) != len(positions):
            raise ValueError(
                f"Expected {len(positions)} replacement CRLs, got {len(updated)}"
            )
        crls = list(self.crls)
        for position, crl in zip(positions, updated, strict=True):
            crls[position] = crl
        return replace(self, crls=tuple(crls))


@dataclass(frozen=True, slots=True)
class CrlPruneStats:
    """Deduplication counts for a single CRL."""

    issuer: str
    total_entries: int
    duplicates_removed: int

    @property
    def kept_entries(self) -> int:
        return self.total_entries - self.duplicates_removed


@dataclass(frozen=True, slots=True)
class PruneStats:
    """Deduplication counts accumulated over all pruned CRLs."""

    per_crl: tuple[CrlPruneStats, ...] = ()

    @property
    def total_entries(self) -> int:
        return sum(s.total_entries for s in self.per_crl)

    @property
    def duplicates_removed(self) -> int:
        return sum(s.duplicates_removed for s in self.per_crl)


class PruneState(Enum):
    """Terminal state of a run: CLEAN needs no write, DIRTY was re-signed and must be persisted."""

    CLEAN = "clean"
    DIRTY = "dirty"


@dataclass(frozen=True, slots=True)
class PruneOutcome:
    """Result of the orchestrated dedup + resign step."""

    state: PruneState
    store: CrlStore
    stats: PruneStats

    @property
    def persistence_required(self) -> bool:
        return self.state is PruneState.DIRTY


@dataclass(frozen=True, slots=True)
class PruneReport:
    """What the pipeline reports back once a run finished."""

    state: PruneState
    certificates_found: int
    duplicates_removed: int
    bytes_written: int = 0
