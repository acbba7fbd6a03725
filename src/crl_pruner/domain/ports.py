"""
Ports — Protocol-based interfaces for infrastructure adapters.

These define WHAT a pruning run needs without specifying HOW it's done:

  Domain ← Ports (protocols) ← Adapters (implementations)

Run order:
  1. ServerStatusChecker → refuse to run while the CA service is up
  2. CrlLoader           → CA key + CRLs from disk (CrlStore)
  3. CrlSigner           → bump CRL number and re-sign (only if duplicates)
  4. CrlWriter           → persist the CRL file (only if duplicates)
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from crl_pruner.domain.models import CaKeyMaterial, Crl, CrlStore
from crl_pruner.railway.result import Result


@runtime_checkable
class ServerStatusChecker(Protocol):
    """
    Port: tell whether the CA service is currently reachable.

    Pruning while the CA can still revoke certificates risks losing
    revocations written between load and write.
    """

    def is_server_online(self) -> bool: ...


@runtime_checkable
class CrlLoader(Protocol):
    """
    Port: load the CA certificate, CA key and CRL file.

    Returns Result[CrlStore]; any missing, unreadable, unparseable or
    mismatched material is a LOAD_ERROR failure.
    """

    def load(self) -> Result[CrlStore]: ...


@runtime_checkable
class CrlSigner(Protocol):
    """
    Port: bump the CRL number of each CRL and sign it again with the CA key.

    Returns new signed snapshots in the order given.
    """

    def resign(self, crls: Sequence[Crl], key: CaKeyMaterial) -> list[Crl]: ...


@runtime_checkable
class CrlWriter(Protocol):
    """
    Port: persist all CRLs of the CRL file, in order.

    Returns Result[int] with the number of bytes written.
    Unsigned snapshots are refused.
    """

    def write(self, crls: Sequence[Crl]) -> Result[int]: ...
