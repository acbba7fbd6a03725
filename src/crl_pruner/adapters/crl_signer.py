"""
Resigner adapter — bump the CRL number and sign CRLs again with the CA key.

Implements the CrlSigner port using:
  - crl_number.bump_crl_number(): CRL number + 1, placed first
  - crl_codec: TBSCertList encoding and CertificateList assembly (asn1crypto)
  - cryptography (PyCA): the signature itself, always over SHA-256

Extension order invariant: the re-signed CRL lists its CRL-number extension
first, followed by the other extensions in their original order.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa

from crl_pruner.adapters.crl_codec import assemble_crl, decode_crl, encode_tbs
from crl_pruner.domain.crl_number import bump_crl_number, crl_number_of
from crl_pruner.domain.models import CaKeyMaterial, Crl

log = structlog.get_logger()


def signature_algorithm_for(key: CaKeyMaterial) -> str:
    """asn1crypto name of the SHA-256 signature algorithm matching the key type."""
    if isinstance(key.private_key, rsa.RSAPrivateKey):
        return "sha256_rsa"
    if isinstance(key.private_key, ec.EllipticCurvePrivateKey):
        return "sha256_ecdsa"
    raise TypeError(f"Unsupported CA key type: {type(key.private_key).__name__}")


def sign_tbs(tbs_der: bytes, key: CaKeyMaterial) -> bytes:
    """Sign DER TBSCertList bytes with the CA key over SHA-256."""
    private_key = key.private_key
    if isinstance(private_key, rsa.RSAPrivateKey):
        return private_key.sign(tbs_der, padding.PKCS1v15(), hashes.SHA256())
    if isinstance(private_key, ec.EllipticCurvePrivateKey):
        return private_key.sign(tbs_der, ec.ECDSA(hashes.SHA256()))
    raise TypeError(f"Unsupported CA key type: {type(private_key).__name__}")


def sign_crl(crl: Crl, key: CaKeyMaterial) -> Crl:
    """
    Sign ``crl`` as it is, without touching its extensions.

    Returns a snapshot decoded back from the signed DER, so what callers see
    is exactly what will be written.
    """
    algorithm = signature_algorithm_for(key)
    tbs_der = encode_tbs(crl, algorithm)
    der = assemble_crl(tbs_der, algorithm, sign_tbs(tbs_der, key))
    return decode_crl(der)


class CrlResigner:
    """
    Bump the CRL number of each CRL and re-sign it.

    Implements the CrlSigner port. Only called for runs that removed
    duplicates; a CRL without CRL-number extension is re-signed with its
    extensions unchanged.
    """

    def resign(self, crls: Sequence[Crl], key: CaKeyMaterial) -> list[Crl]:
        resigned: list[Crl] = []
        for crl in crls:
            updated = crl.with_extensions(bump_crl_number(crl.extensions))
            signed = sign_crl(updated, key)
            log.debug(
                "resign.crl_signed",
                issuer=crl.issuer,
                crl_number=crl_number_of(signed),
                algorithm=signed.signature_algorithm,
            )
            resigned.append(signed)
        return resigned
