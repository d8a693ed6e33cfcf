from __future__ import annotations

import json
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization

from ssl_material import DirectoryVault, SecretStoreError
from ssl_material.keygen import load_private_key


def _public_pem(private_pem: bytes) -> bytes:
    return load_private_key(private_pem).public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@pytest.fixture
def client_key_file(tmp_path: Path, key_pem: bytes) -> Path:
    path = tmp_path / "web01.pem"
    path.write_bytes(key_pem)
    return path


def test_seal_and_load_item(tmp_path: Path, key_pem: bytes, client_key_file: Path) -> None:
    vault = DirectoryVault(tmp_path / "vault", "web01", client_key_file)
    vault.seal_item("ssl", "www", {"key": "PEM KEY"}, {"web01": _public_pem(key_pem)})

    assert vault.load_item("ssl", "www") == {"id": "www", "key": "PEM KEY"}
    on_disk = (tmp_path / "vault" / "ssl" / "www.json").read_text(encoding="utf-8")
    assert "PEM KEY" not in on_disk
    keys = json.loads((tmp_path / "vault" / "ssl" / "www_keys.json").read_text(encoding="utf-8"))
    assert set(keys) == {"id", "web01"}


def test_item_not_shared_with_client(
    tmp_path: Path, key_pem: bytes, other_key_pem: bytes, client_key_file: Path
) -> None:
    DirectoryVault(tmp_path, "web01", client_key_file).seal_item(
        "ssl", "www", {"key": "PEM KEY"}, {"web02": _public_pem(other_key_pem)}
    )

    with pytest.raises(SecretStoreError, match="not shared"):
        DirectoryVault(tmp_path, "web01", client_key_file).load_item("ssl", "www")


def test_item_sealed_for_other_key_cannot_be_opened(
    tmp_path: Path, other_key_pem: bytes, client_key_file: Path
) -> None:
    vault = DirectoryVault(tmp_path, "web01", client_key_file)
    vault.seal_item("ssl", "www", {"key": "PEM KEY"}, {"web01": _public_pem(other_key_pem)})

    with pytest.raises(SecretStoreError):
        vault.load_item("ssl", "www")


def test_unreadable_client_key(tmp_path: Path, key_pem: bytes) -> None:
    vault = DirectoryVault(tmp_path, "web01", tmp_path / "absent.pem")
    vault.seal_item("ssl", "www", {"key": "PEM KEY"}, {"web01": _public_pem(key_pem)})

    with pytest.raises(SecretStoreError, match="client key"):
        vault.load_item("ssl", "www")


def test_seal_requires_clients(tmp_path: Path, client_key_file: Path) -> None:
    with pytest.raises(ValueError):
        DirectoryVault(tmp_path, "web01", client_key_file).seal_item("ssl", "www", {}, {})
