"""
Shared test fixtures and helpers for the crl-pruner test suite.

Provides real CA material generated with cryptography (RSA and EC keys,
self-signed CA certificates) and a builder for signed CRLs, so tests run
against genuine DER/PEM encodings instead of canned fixture files.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import structlog
from asn1crypto import x509 as asn1_x509
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID

from crl_pruner.adapters.crl_codec import join_crl_bundle
from crl_pruner.adapters.crl_signer import sign_crl
from crl_pruner.domain.crl_number import encode_integer
from crl_pruner.domain.models import (
    CRL_NUMBER_OID,
    CaKeyMaterial,
    Crl,
    Extension,
    RevokedEntry,
)

AUTHORITY_KEY_IDENTIFIER_OID = "2.5.29.35"

THIS_UPDATE = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)
NEXT_UPDATE = datetime(2029, 5, 1, 12, 0, 0, tzinfo=UTC)
T1 = datetime(2024, 1, 10, 8, 0, 0, tzinfo=UTC)
T2 = datetime(2024, 2, 20, 9, 30, 0, tzinfo=UTC)
T3 = datetime(2024, 3, 30, 17, 45, 0, tzinfo=UTC)


def ca_name(common_name: str = "CA") -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])


def make_ca_certificate(
    key: rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey,
    common_name: str = "CA",
) -> x509.Certificate:
    """Self-signed CA certificate for ``key``."""
    name = ca_name(common_name)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(1)
        .not_valid_before(THIS_UPDATE - timedelta(days=1))
        .not_valid_after(NEXT_UPDATE)
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )


def authority_key_identifier(key_id: bytes = b"\x01" * 20) -> Extension:
    value = asn1_x509.AuthorityKeyIdentifier({"key_identifier": key_id}).dump()
    return Extension(oid=AUTHORITY_KEY_IDENTIFIER_OID, value=value)


def crl_number_extension(number: int) -> Extension:
    return Extension(oid=CRL_NUMBER_OID, value=encode_integer(number))


def build_crl(
    key: CaKeyMaterial,
    entries: Sequence[tuple[int, datetime]] = (),
    crl_number: int | None = 4,
    common_name: str = "CA",
    extensions: Sequence[Extension] | None = None,
) -> Crl:
    """
    Build and sign a CRL issued by CN=<common_name>.

    By default the extensions are [AuthorityKeyIdentifier, CRLNumber] so
    tests can observe the CRL number being moved first on resign.
    """
    if extensions is None:
        extensions = [authority_key_identifier()]
        if crl_number is not None:
            extensions.append(crl_number_extension(crl_number))

    unsigned = Crl(
        issuer=f"CN={common_name}",
        issuer_der=ca_name(common_name).public_bytes(),
        this_update=THIS_UPDATE,
        next_update=NEXT_UPDATE,
        revoked=tuple(RevokedEntry(serial, when) for serial, when in entries),
        extensions=tuple(extensions),
        signature_algorithm="sha256_rsa",
        signature=b"",
    )
    return sign_crl(unsigned, key)


def serials(crl: Crl) -> list[int]:
    return [entry.serial_number for entry in crl.revoked]


# ─────────────────────── Logging ───────────────────────


@pytest.fixture(autouse=True)
def reset_structlog() -> Iterator[None]:
    """Undo configure_structlog() calls made by CLI tests."""
    yield
    structlog.reset_defaults()


# ─────────────────────── Key material ───────────────────────


@pytest.fixture(scope="session")
def rsa_key() -> CaKeyMaterial:
    return CaKeyMaterial(private_key=rsa.generate_private_key(public_exponent=65537, key_size=2048))


@pytest.fixture(scope="session")
def other_rsa_key() -> CaKeyMaterial:
    return CaKeyMaterial(private_key=rsa.generate_private_key(public_exponent=65537, key_size=2048))


@pytest.fixture(scope="session")
def ec_key() -> CaKeyMaterial:
    return CaKeyMaterial(private_key=ec.generate_private_key(ec.SECP256R1()))


@pytest.fixture()
def ca_files(tmp_path: Path, rsa_key: CaKeyMaterial) -> dict[str, Path]:
    """
    Write a CA certificate, its key and an empty-path CRL slot to ``tmp_path``.

    Returns the paths under the keys "cacert", "cakey" and "cacrl"; tests
    write the CRL file themselves with ``write_crl_file``.
    """
    private_key = rsa_key.private_key
    cacert = tmp_path / "ca_crt.pem"
    cakey = tmp_path / "ca_key.pem"
    cacert.write_bytes(
        make_ca_certificate(private_key).public_bytes(serialization.Encoding.PEM)
    )
    cakey.write_bytes(
        private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return {"cacert": cacert, "cakey": cakey, "cacrl": tmp_path / "ca_crl.pem"}


def write_crl_file(path: Path, crls: Sequence[Crl]) -> bytes:
    """Write ``crls`` as a PEM bundle and return the bytes written."""
    data = join_crl_bundle(crl.der for crl in crls if crl.der is not None)
    path.write_bytes(data)
    return data


@pytest.fixture()
def ca_env(ca_files: dict[str, Path], monkeypatch: pytest.MonkeyPatch) -> dict[str, Path]:
    """Point the settings at ``ca_files`` through CA__* environment variables."""
    for name in ("CA__DIRECTORY", "SERVER__STATUS_URL", "CRL_FILE_MODE", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CA__CACERT", str(ca_files["cacert"]))
    monkeypatch.setenv("CA__CAKEY", str(ca_files["cakey"]))
    monkeypatch.setenv("CA__CACRL", str(ca_files["cacrl"]))
    return ca_files
