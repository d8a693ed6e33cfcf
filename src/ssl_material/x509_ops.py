from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Callable

from asn1crypto import algos, keys, pem, x509

SELF_SIGNED_VALIDITY_DAYS = 3650
SHA256_RSA = algos.SignedDigestAlgorithm({"algorithm": "sha256_rsa"})


def build_common_name(hostname: str) -> x509.Name:
    """Distinguished Name holding only `CN=<hostname>`."""
    if not hostname or not hostname.strip():
        raise ValueError("hostname is required for a common name.")
    return x509.Name.build({"common_name": hostname.strip()})


def _load_pem_or_der(
    data: bytes | str,
    expected_pem_type: str,
) -> bytes:
    if isinstance(data, str):
        payload = data.encode("utf-8")
    else:
        payload = data

    if pem.detect(payload):
        pem_type, _headers, der_bytes = pem.unarmor(payload)
        if pem_type != expected_pem_type:
            raise ValueError(
                f"Expected PEM type '{expected_pem_type}', received '{pem_type}'."
            )
        return der_bytes
    return payload


def load_certificate(data: bytes | str) -> x509.Certificate:
    return x509.Certificate.load(_load_pem_or_der(data, "CERTIFICATE"))


def dump_certificate_pem(certificate: x509.Certificate) -> bytes:
    return pem.armor("CERTIFICATE", certificate.dump())


def generate_serial_number() -> int:
    # 160 random bits with the top bit cleared: non-negative and at most 20 DER octets.
    return int.from_bytes(os.urandom(20), byteorder="big") >> 1


def _x509_time(value: datetime) -> x509.Time:
    # UTCTime only covers years before 2050.
    if value.year >= 2050:
        return x509.Time({"general_time": value})
    return x509.Time({"utc_time": value})


def build_self_signed_extensions(
    *,
    subject: x509.Name,
    subject_public_key_info: keys.PublicKeyInfo,
    serial_number: int,
) -> x509.Extensions:
    return x509.Extensions(
        [
            x509.Extension(
                {
                    "extn_id": "basic_constraints",
                    "critical": True,
                    "extn_value": x509.BasicConstraints({"ca": True}),
                }
            ),
            x509.Extension(
                {
                    "extn_id": "key_identifier",
                    "critical": False,
                    "extn_value": subject_public_key_info.sha1,
                }
            ),
            x509.Extension(
                {
                    "extn_id": "authority_key_identifier",
                    "critical": False,
                    "extn_value": x509.AuthorityKeyIdentifier(
                        {
                            "key_identifier": subject_public_key_info.sha1,
                            "authority_cert_issuer": [
                                x509.GeneralName(name="directory_name", value=subject)
                            ],
                            "authority_cert_serial_number": serial_number,
                        }
                    ),
                }
            ),
        ]
    )


def create_self_signed_certificate(
    *,
    subject: x509.Name,
    subject_public_key_info: keys.PublicKeyInfo,
    sign_tbs: Callable[[bytes], bytes],
    validity_days: int = SELF_SIGNED_VALIDITY_DAYS,
    serial_number: int | None = None,
    now: datetime | None = None,
) -> x509.Certificate:
    if validity_days <= 0:
        raise ValueError("validity_days must be > 0.")
    resolved_serial = serial_number if serial_number is not None else generate_serial_number()

    not_before = (now or datetime.now(timezone.utc)).replace(microsecond=0)
    not_after = not_before + timedelta(days=validity_days)
    extensions = build_self_signed_extensions(
        subject=subject,
        subject_public_key_info=subject_public_key_info,
        serial_number=resolved_serial,
    )

    tbs_certificate = x509.TbsCertificate(
        {
            "version": "v3",
            "serial_number": resolved_serial,
            "signature": SHA256_RSA,
            "issuer": subject,
            "validity": x509.Validity(
                {
                    "not_before": _x509_time(not_before),
                    "not_after": _x509_time(not_after),
                }
            ),
            "subject": subject,
            "subject_public_key_info": subject_public_key_info,
            "extensions": extensions,
        }
    )

    signature = sign_tbs(tbs_certificate.dump())
    return x509.Certificate(
        {
            "tbs_certificate": tbs_certificate,
            "signature_algorithm": SHA256_RSA,
            "signature_value": signature,
        }
    )


def certificate_rsa_modulus(certificate: x509.Certificate) -> int | None:
    """Public modulus of an RSA certificate, or None for other key types."""
    public_key_info = certificate["tbs_certificate"]["subject_public_key_info"]
    if public_key_info.algorithm != "rsa":
        return None
    return public_key_info["public_key"].parsed["modulus"].native
