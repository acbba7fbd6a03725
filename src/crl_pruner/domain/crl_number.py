"""
CRL-number extension handling (RFC 5280 §5.2.3).

The CRL number is a DER INTEGER wrapped in the extnValue OCTET STRING. It is
unbounded, so values go through Python ints and asn1crypto's Integer codec,
never through fixed-width types.
"""

from __future__ import annotations

from asn1crypto import core

from crl_pruner.domain.models import CRL_NUMBER_OID, Crl, Extension


def decode_integer(value: bytes) -> int:
    """Decode a DER INTEGER. Raises ValueError on anything else."""
    parsed = core.Integer.load(value, strict=True)
    return int(parsed.native)


def encode_integer(number: int) -> bytes:
    return core.Integer(number).dump()


def crl_number_of(crl: Crl) -> int | None:
    """Value of the CRL-number extension, or None when the CRL has none."""
    for ext in crl.extensions:
        if ext.oid == CRL_NUMBER_OID:
            return decode_integer(ext.value)
    return None


def bump_crl_number(extensions: tuple[Extension, ...]) -> tuple[Extension, ...]:
    """
    Increment the CRL number by one and put it first.

    The result is ``[CRL number, *other extensions]`` with the others in
    their original relative order. Without a CRL-number extension the
    extensions are returned unchanged; no number is invented.
    """
    numbers = [ext for ext in extensions if ext.oid == CRL_NUMBER_OID]
    others = [ext for ext in extensions if ext.oid != CRL_NUMBER_OID]
    if not numbers:
        return extensions

    bumped = [
        Extension(
            oid=ext.oid,
            value=encode_integer(decode_integer(ext.value) + 1),
            critical=ext.critical,
        )
        for ext in numbers
    ]
    return tuple(bumped + others)
