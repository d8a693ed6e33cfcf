"""RSA private key generation and loading for self-signed material."""

from __future__ import annotations

import logging

from asn1crypto import keys
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import load_pem_private_key

from .exceptions import GenerationError, KeyParseError, format_exception

RSA_KEY_BITS = 2048
RSA_PUBLIC_EXPONENT = 65537

_logger = logging.getLogger("ssl_material.keygen")


def generate_key() -> bytes:
    """Return a fresh unencrypted RSA-2048 private key as PEM."""
    try:
        private_key = rsa.generate_private_key(
            public_exponent=RSA_PUBLIC_EXPONENT,
            key_size=RSA_KEY_BITS,
        )
        pem: bytes = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
    except Exception as exc:
        _logger.exception("RSA key generation failed.")
        raise GenerationError(
            f"Failed to generate RSA-{RSA_KEY_BITS} key: {format_exception(exc)}"
        ) from exc
    _logger.info("Generated RSA private key bits=%d", RSA_KEY_BITS)
    return pem


def load_private_key(key_bytes: bytes | str) -> rsa.RSAPrivateKey:
    """Parse an unencrypted PEM RSA private key. Raises KeyParseError."""
    payload = key_bytes.encode("utf-8") if isinstance(key_bytes, str) else key_bytes
    if not payload:
        raise KeyParseError("Private key content is empty.")
    try:
        private_key = load_pem_private_key(payload, password=None)
    except (ValueError, TypeError) as exc:
        raise KeyParseError(
            f"Invalid PEM private key: {format_exception(exc)}"
        ) from exc
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise KeyParseError(
            f"Expected an RSA private key, got {type(private_key).__name__}."
        )
    return private_key


def public_key_info(private_key: rsa.RSAPrivateKey) -> keys.PublicKeyInfo:
    """SubjectPublicKeyInfo of `private_key` as an asn1crypto structure."""
    der = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return keys.PublicKeyInfo.load(der)


def public_modulus(private_key: rsa.RSAPrivateKey) -> int:
    return private_key.public_key().public_numbers().n
