from __future__ import annotations

import pytest

from ssl_material import ArtifactSpec, ResolvedMaterial, SourceKind, UnknownSourceError


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("file", SourceKind.FILE),
        (" Self-Signed ", SourceKind.SELF_SIGNED),
        ("secret_store", SourceKind.SECRET_STORE),
        ("data-bag", SourceKind.SECRET_STORE),
        ("vault", SourceKind.VAULT),
        ("chef-vault", SourceKind.VAULT),
        (SourceKind.FILE, SourceKind.FILE),
    ],
)
def test_source_kind_parse(raw: str, expected: SourceKind) -> None:
    assert SourceKind.parse(raw) is expected


@pytest.mark.parametrize("raw", [None, "", "attribute", "http"])
def test_source_kind_parse_rejects_unknown_values(raw: str | None) -> None:
    with pytest.raises(UnknownSourceError):
        SourceKind.parse(raw)


def test_describe_names_backend_coordinates() -> None:
    assert ArtifactSpec.from_file("/etc/ssl/www.pem").describe() == "file: /etc/ssl/www.pem"
    assert (
        ArtifactSpec.from_vault("ssl", "www", "cert").describe() == "vault: ssl.www->cert"
    )


def test_resolved_material_requires_both_artifacts() -> None:
    with pytest.raises(ValueError, match="key_bytes"):
        ResolvedMaterial(key_bytes=b"", cert_bytes=b"cert")
    with pytest.raises(ValueError, match="cert_bytes"):
        ResolvedMaterial(key_bytes=b"key", cert_bytes=b"")
    assert ResolvedMaterial(b"key", b"cert").to_dict() == {"key_pem": "key", "cert_pem": "cert"}
