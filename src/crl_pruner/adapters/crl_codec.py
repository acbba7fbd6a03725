"""
CRL codec adapter — DER/PEM CRL decoding and TBSCertList re-encoding.

Uses:
  - asn1crypto: structural access to CertificateList / TbsCertList, so the
    revocation list and extensions can be rebuilt field by field
  - cryptography (PyCA): RFC 4514 issuer rendering and signature verification

Decoding fails closed: any entry or extension that does not parse raises,
and the loader turns that into a LOAD_ERROR for the whole run.

Pipeline:
  CRL file bytes
    → split_crl_bundle(): one DER blob per PEM "X509 CRL" block
    → decode_crl(): Crl snapshot (domain model)
  Crl + signature algorithm
    → encode_tbs(): DER TBSCertList to be signed
    → assemble_crl(): signed DER CertificateList
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from asn1crypto import algos, core, pem
from asn1crypto import crl as asn1_crl
from asn1crypto import x509 as asn1_x509
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm

from crl_pruner.domain.models import Crl, Extension, RevokedEntry

PEM_CRL_TYPE = "X509 CRL"

_VERSIONS = {"v1": 0, "v2": 1}
_VERSION_NAMES = {number: name for name, number in _VERSIONS.items()}


# ─────────────────────── Bundles ───────────────────────


def split_crl_bundle(data: bytes) -> list[bytes]:
    """
    Split a CRL file into DER-encoded CRLs.

    PEM input may hold several concatenated "X509 CRL" blocks (base + delta).
    Non-PEM input is taken as a single DER CRL.
    """
    if not pem.detect(data):
        return [data]

    ders: list[bytes] = []
    for type_name, _headers, der in pem.unarmor(data, multiple=True):
        if type_name != PEM_CRL_TYPE:
            raise ValueError(f"Unexpected PEM block {type_name!r} in CRL file")
        ders.append(der)
    if not ders:
        raise ValueError("No CRL found in CRL file")
    return ders


def join_crl_bundle(ders: Iterable[bytes]) -> bytes:
    """Concatenate DER CRLs as PEM "X509 CRL" blocks, in order."""
    return b"".join(pem.armor(PEM_CRL_TYPE, der) for der in ders)


# ─────────────────────── Decoding ───────────────────────


def _decode_extensions(extensions: core.Asn1Value) -> tuple[Extension, ...]:
    """Decode a (possibly absent) extension list, rejecting repeated OIDs."""
    if isinstance(extensions, core.Void):
        return ()

    decoded: list[Extension] = []
    for ext in extensions:
        oid = ext["extn_id"].dotted
        if any(existing.oid == oid for existing in decoded):
            raise ValueError(f"Extension {oid} appears more than once")
        value = ext["extn_value"]
        # Parse known extension values so a corrupt one fails here.
        value.native  # noqa: B018
        decoded.append(
            Extension(oid=oid, value=value.contents, critical=bool(ext["critical"].native))
        )
    return tuple(decoded)


def _decode_entry(entry: asn1_crl.RevokedCertificate) -> RevokedEntry:
    return RevokedEntry(
        serial_number=int(entry["user_certificate"].native),
        revocation_date=entry["revocation_date"].native,
        extensions=_decode_extensions(entry["crl_entry_extensions"]),
    )


def decode_crl(der: bytes) -> Crl:
    """
    Decode one DER CRL into a Crl snapshot.

    Raises ValueError (or an asn1crypto/cryptography parsing error) on any
    malformed part; nothing is skipped silently.
    """
    certificate_list = asn1_crl.CertificateList.load(der, strict=True)
    tbs = certificate_list["tbs_cert_list"]

    revoked_certificates = tbs["revoked_certificates"]
    revoked: tuple[RevokedEntry, ...] = ()
    if not isinstance(revoked_certificates, core.Void):
        revoked = tuple(_decode_entry(entry) for entry in revoked_certificates)

    version = tbs["version"]
    issuer = x509.load_der_x509_crl(der).issuer.rfc4514_string()

    return Crl(
        issuer=issuer,
        issuer_der=tbs["issuer"].dump(),
        this_update=tbs["this_update"].native,
        next_update=tbs["next_update"].native,
        revoked=revoked,
        extensions=_decode_extensions(tbs["crl_extensions"]),
        signature_algorithm=certificate_list["signature_algorithm"]["algorithm"].native,
        signature=certificate_list["signature"].native,
        der=der,
        version=None if isinstance(version, core.Void) else _VERSIONS[version.native],
    )


# ─────────────────────── Encoding ───────────────────────


def _time(value: datetime) -> asn1_x509.Time:
    """UTCTime for 1950–2049, GeneralizedTime otherwise (RFC 5280 §5.1.2.4)."""
    if 1950 <= value.year < 2050:
        return asn1_x509.Time({"utc_time": value})
    return asn1_x509.Time({"general_time": value})


def _signed_digest_algorithm(name: str) -> algos.SignedDigestAlgorithm:
    """RSA PKCS#1 v1.5 identifiers carry an explicit NULL; ECDSA ones carry nothing."""
    if name.endswith("_rsa"):
        return algos.SignedDigestAlgorithm({"algorithm": name, "parameters": core.Null()})
    return algos.SignedDigestAlgorithm({"algorithm": name})


def _encode_extensions(extensions: tuple[Extension, ...]) -> list[dict[str, object]]:
    return [
        {
            "extn_id": ext.oid,
            "critical": ext.critical,
            "extn_value": core.ParsableOctetString(ext.value),
        }
        for ext in extensions
    ]


def _encode_entry(entry: RevokedEntry) -> asn1_crl.RevokedCertificate:
    fields: dict[str, object] = {
        "user_certificate": entry.serial_number,
        "revocation_date": _time(entry.revocation_date),
    }
    if entry.extensions:
        fields["crl_entry_extensions"] = _encode_extensions(entry.extensions)
    return asn1_crl.RevokedCertificate(fields)


def encode_tbs(crl: Crl, signature_algorithm: str) -> bytes:
    """
    Build the DER TBSCertList of ``crl`` announcing ``signature_algorithm``.

    Extensions are written in the order of ``crl.extensions``; an empty
    revocation list is omitted, as RFC 5280 requires.
    """
    fields: dict[str, object] = {
        "signature": _signed_digest_algorithm(signature_algorithm),
        "issuer": asn1_x509.Name.load(crl.issuer_der),
        "this_update": _time(crl.this_update),
    }
    if crl.version is not None:
        fields["version"] = _VERSION_NAMES[crl.version]
    if crl.next_update is not None:
        fields["next_update"] = _time(crl.next_update)
    if crl.revoked:
        fields["revoked_certificates"] = [_encode_entry(entry) for entry in crl.revoked]
    if crl.extensions:
        fields["crl_extensions"] = _encode_extensions(crl.extensions)
    return asn1_crl.TbsCertList(fields).dump()


def assemble_crl(tbs_der: bytes, signature_algorithm: str, signature: bytes) -> bytes:
    """Wrap a TBSCertList and its signature into a DER CertificateList."""
    certificate_list = asn1_crl.CertificateList(
        {
            "tbs_cert_list": asn1_crl.TbsCertList.load(tbs_der),
            "signature_algorithm": _signed_digest_algorithm(signature_algorithm),
            "signature": signature,
        }
    )
    return certificate_list.dump()


# ─────────────────────── Verification ───────────────────────


def verify_crl(crl: Crl, public_key: object) -> bool:
    """True when ``crl`` is signed and its signature verifies against ``public_key``."""
    if crl.der is None:
        return False
    try:
        return x509.load_der_x509_crl(crl.der).is_signature_valid(public_key)  # type: ignore[arg-type]
    except (TypeError, UnsupportedAlgorithm):
        return False
