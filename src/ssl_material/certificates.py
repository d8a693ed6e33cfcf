"""Self-signed certificate generation and key/hostname verification."""

from __future__ import annotations

import logging

from asn1crypto import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from .exceptions import CertParseError, GenerationError, format_exception
from .keygen import load_private_key, public_key_info, public_modulus
from .x509_ops import (
    SELF_SIGNED_VALIDITY_DAYS,
    build_common_name,
    certificate_rsa_modulus,
    create_self_signed_certificate,
    dump_certificate_pem,
    load_certificate,
)

_logger = logging.getLogger("ssl_material.certificates")


def generate_self_signed(
    key_bytes: bytes | str,
    hostname: str,
    *,
    validity_days: int = SELF_SIGNED_VALIDITY_DAYS,
) -> bytes:
    """
    Issue a PEM certificate for `CN=<hostname>` signed by its own key.

    The certificate is a v3 CA certificate (basicConstraints CA:TRUE) with
    subject and authority key identifiers, valid from now for `validity_days`.
    Raises KeyParseError when `key_bytes` is not an RSA private key.
    """
    private_key = load_private_key(key_bytes)
    subject = build_common_name(hostname)

    def sign_tbs(tbs: bytes) -> bytes:
        return private_key.sign(tbs, padding.PKCS1v15(), hashes.SHA256())

    try:
        certificate = create_self_signed_certificate(
            subject=subject,
            subject_public_key_info=public_key_info(private_key),
            sign_tbs=sign_tbs,
            validity_days=validity_days,
        )
        cert_pem = dump_certificate_pem(certificate)
    except Exception as exc:
        _logger.exception("Self-signed certificate generation failed hostname=%s", hostname)
        raise GenerationError(
            f"Failed to generate self-signed certificate for '{hostname}': "
            f"{format_exception(exc)}"
        ) from exc

    _logger.info(
        "Generated self-signed certificate hostname=%s validity_days=%d",
        hostname,
        validity_days,
    )
    return cert_pem


def parse_certificate(cert_bytes: bytes | str) -> x509.Certificate:
    """Load a PEM or DER certificate, raising CertParseError on malformed input."""
    if not cert_bytes:
        raise CertParseError("Certificate content is empty.")
    try:
        certificate = load_certificate(cert_bytes)
        # asn1crypto decodes lazily; force every value verification compares.
        certificate.subject.native
        certificate.issuer.native
        certificate_rsa_modulus(certificate)
    except (ValueError, TypeError, KeyError) as exc:
        raise CertParseError(
            f"Invalid certificate: {format_exception(exc)}"
        ) from exc
    return certificate


def _same_name(actual: x509.Name, expected: x509.Name) -> bool:
    try:
        return actual == expected
    except (ValueError, TypeError) as exc:
        raise CertParseError(
            f"Invalid certificate name: {format_exception(exc)}"
        ) from exc


def verify(key_bytes: bytes | str, cert_bytes: bytes | str, hostname: str) -> bool:
    """
    True when the certificate carries the key's public modulus and both its
    subject and issuer are `CN=<hostname>`.

    Names compare the way X.509 name matching does, so case and surrounding
    whitespace in the common name are ignored. Expiry, revocation and
    extensions are not checked.
    """
    private_key = load_private_key(key_bytes)
    certificate = parse_certificate(cert_bytes)
    expected = build_common_name(hostname)

    modulus = certificate_rsa_modulus(certificate)
    if modulus is None or modulus != public_modulus(private_key):
        _logger.debug("Certificate public key does not match key hostname=%s", hostname)
        return False
    if not (
        _same_name(certificate.subject, expected)
        and _same_name(certificate.issuer, expected)
    ):
        _logger.debug(
            "Certificate name mismatch hostname=%s subject=%s issuer=%s",
            hostname,
            certificate.subject.human_friendly,
            certificate.issuer.human_friendly,
        )
        return False
    return True
