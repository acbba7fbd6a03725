"""
Filesystem adapters — load CA material and CRLs, write the pruned CRL file.

Implements the CrlLoader and CrlWriter ports.

Loading (each step short-circuits to LOAD_ERROR):
  1. CA certificate (PEM or DER)
  2. CA private key (PEM or DER, unencrypted, RSA or EC), must match the certificate
  3. CRL file → one Crl per PEM block, each verified against the key

CRLs that do not verify against the CA key stay in the store, so they are
written back unchanged, but they are not pruned.

Writing is atomic: a temporary file in the target directory is filled,
chmod'ed and renamed over the CRL file.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path

import structlog
from asn1crypto import pem
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from crl_pruner.adapters.crl_codec import (
    decode_crl,
    join_crl_bundle,
    split_crl_bundle,
    verify_crl,
)
from crl_pruner.domain.models import CaKeyMaterial, Crl, CrlStore
from crl_pruner.railway import ErrorCode
from crl_pruner.railway.result import Result

log = structlog.get_logger()


def _load_certificate(path: Path) -> x509.Certificate:
    data = path.read_bytes()
    if pem.detect(data):
        return x509.load_pem_x509_certificate(data)
    return x509.load_der_x509_certificate(data)


def _load_key(path: Path, certificate: x509.Certificate) -> CaKeyMaterial:
    """Load the CA key and check it belongs to the CA certificate."""
    data = path.read_bytes()
    if pem.detect(data):
        private_key = serialization.load_pem_private_key(data, password=None)
    else:
        private_key = serialization.load_der_private_key(data, password=None)

    if not isinstance(private_key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)):
        raise TypeError(
            f"CA key must be an RSA or EC private key, got {type(private_key).__name__}"
        )

    spki = serialization.PublicFormat.SubjectPublicKeyInfo
    der = serialization.Encoding.DER
    if private_key.public_key().public_bytes(der, spki) != certificate.public_key().public_bytes(
        der, spki
    ):
        raise ValueError("CA key does not match the CA certificate")
    return CaKeyMaterial(private_key=private_key)


class FileCrlLoader:
    """
    Load the CA certificate, CA key and CRL file from disk.

    Implements the CrlLoader port.
    All exceptions are caught at this adapter boundary via Result.from_computation().
    """

    def __init__(self, cacert_path: Path, cakey_path: Path, cacrl_path: Path) -> None:
        self._cacert_path = cacert_path
        self._cakey_path = cakey_path
        self._cacrl_path = cacrl_path

    def load(self) -> Result[CrlStore]:
        return (
            Result.from_computation(
                lambda: _load_certificate(self._cacert_path),
                ErrorCode.LOAD_ERROR,
                f"Could not load CA certificate {self._cacert_path}",
            )
            .flat_map(
                lambda certificate: Result.from_computation(
                    lambda: _load_key(self._cakey_path, certificate),
                    ErrorCode.LOAD_ERROR,
                    f"Could not load CA key {self._cakey_path}",
                )
            )
            .flat_map(
                lambda key: Result.from_computation(
                    lambda: self._load_crls(key),
                    ErrorCode.LOAD_ERROR,
                    f"Could not load CRL file {self._cacrl_path}",
                )
            )
        )

    def _load_crls(self, key: CaKeyMaterial) -> CrlStore:
        """Decode every CRL of the file and note which ones the CA key signed."""
        crls = tuple(decode_crl(der) for der in split_crl_bundle(self._cacrl_path.read_bytes()))

        public_key = key.public_key()
        prunable: set[int] = set()
        for index, crl in enumerate(crls):
            if verify_crl(crl, public_key):
                prunable.add(index)
            else:
                log.warning("loader.crl_unverified", issuer=crl.issuer, position=index)

        log.info(
            "loader.complete",
            path=str(self._cacrl_path),
            crls=len(crls),
            prunable=len(prunable),
        )
        return CrlStore(crls=crls, key=key, prunable=frozenset(prunable))


class FileCrlWriter:
    """
    Write CRLs as concatenated PEM blocks, atomically and with a fixed mode.

    Implements the CrlWriter port.
    """

    def __init__(self, cacrl_path: Path, mode: int = 0o644) -> None:
        self._cacrl_path = cacrl_path
        self._mode = mode

    def write(self, crls: Sequence[Crl]) -> Result[int]:
        """
        Replace the CRL file with ``crls``, in order.

        Returns Result[int] with the number of bytes written, or
        Result.failure(PERSISTENCE_ERROR, ...) if a CRL is unsigned or
        the file cannot be written.
        """
        unsigned = [crl.issuer for crl in crls if not crl.is_signed]
        if unsigned:
            return Result.failure(
                ErrorCode.PERSISTENCE_ERROR,
                f"Refusing to write unsigned CRL(s): {', '.join(unsigned)}",
            )
        return Result.from_computation(
            lambda: self._do_write(crls),
            ErrorCode.PERSISTENCE_ERROR,
            f"Could not write CRL file {self._cacrl_path}",
        )

    def _do_write(self, crls: Sequence[Crl]) -> int:
        data = join_crl_bundle(crl.der for crl in crls if crl.der is not None)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._cacrl_path.parent,
            prefix=f".{self._cacrl_path.name}.",
            suffix=".tmp",
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            tmp_path.chmod(self._mode)
            tmp_path.replace(self._cacrl_path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                tmp_path.unlink()
            raise

        log.info("writer.complete", path=str(self._cacrl_path), size_bytes=len(data))
        return len(data)
