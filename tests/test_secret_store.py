from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
from pathlib import Path
from typing import Any

import pytest
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ssl_material import DirectorySecretStore, SecretStoreError
from ssl_material.secret_store import decrypt_value, encrypt_value, read_secret_file

SECRET = b"correct horse battery staple"


def _cbc_envelope(value: Any, secret: bytes, *, version: int) -> dict[str, Any]:
    key = hashlib.sha256(secret).digest()
    iv = os.urandom(16)
    padder = padding.PKCS7(128).padder()
    plaintext = padder.update(json.dumps({"json_wrapper": value}).encode("utf-8"))
    plaintext += padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(plaintext) + encryptor.finalize()
    envelope: dict[str, Any] = {
        "encrypted_data": base64.b64encode(ciphertext).decode("ascii"),
        "iv": base64.b64encode(iv).decode("ascii"),
        "version": version,
        "cipher": "aes-256-cbc",
    }
    if version == 2:
        digest = hmac.new(
            secret, envelope["encrypted_data"].encode("ascii"), hashlib.sha256
        ).digest()
        envelope["hmac"] = base64.b64encode(digest).decode("ascii")
    return envelope


@pytest.fixture
def secret_file(tmp_path: Path) -> Path:
    path = tmp_path / "secret"
    path.write_text(SECRET.decode("ascii") + "\n", encoding="utf-8")
    return path


def test_plain_item_round_trip(tmp_path: Path) -> None:
    store = DirectorySecretStore(tmp_path / "store")
    path = store.write_item("ssl", "www", {"key": "PEM KEY"})

    assert path == tmp_path / "store" / "ssl" / "www.json"
    assert store.load_item("ssl", "www") == {"id": "www", "key": "PEM KEY"}


def test_encrypted_item_hides_values_on_disk(tmp_path: Path, secret_file: Path) -> None:
    store = DirectorySecretStore(tmp_path)
    path = store.write_item("ssl", "www", {"cert": "PEM CERT"}, str(secret_file))

    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk["id"] == "www"
    assert on_disk["cert"]["version"] == 3
    assert "PEM CERT" not in path.read_text(encoding="utf-8")
    assert store.load_item("ssl", "www", str(secret_file))["cert"] == "PEM CERT"


def test_encrypted_item_with_wrong_secret_fails(tmp_path: Path, secret_file: Path) -> None:
    store = DirectorySecretStore(tmp_path)
    store.write_item("ssl", "www", {"cert": "PEM CERT"}, str(secret_file))
    wrong = tmp_path / "wrong"
    wrong.write_text("not the secret", encoding="utf-8")

    with pytest.raises(SecretStoreError, match="decrypt"):
        store.load_item("ssl", "www", str(wrong))


@pytest.mark.parametrize("version", [1, 2])
def test_decrypts_cbc_envelopes(version: int) -> None:
    envelope = _cbc_envelope({"nested": ["value"]}, SECRET, version=version)
    assert decrypt_value(envelope, SECRET) == {"nested": ["value"]}


def test_version_2_hmac_mismatch_is_rejected() -> None:
    envelope = _cbc_envelope("value", SECRET, version=2)
    envelope["hmac"] = base64.b64encode(b"\x00" * 32).decode("ascii")
    with pytest.raises(SecretStoreError, match="HMAC"):
        decrypt_value(envelope, SECRET)


def test_unsupported_envelope_version_is_rejected() -> None:
    envelope = encrypt_value("value", SECRET)
    envelope["version"] = 9
    with pytest.raises(SecretStoreError, match="version"):
        decrypt_value(envelope, SECRET)


def test_missing_item_raises(tmp_path: Path) -> None:
    with pytest.raises(SecretStoreError, match="not found"):
        DirectorySecretStore(tmp_path).load_item("ssl", "absent")


@pytest.mark.parametrize("item_id", ["../escape", "a/b", "..", ""])
def test_item_names_cannot_escape_root(tmp_path: Path, item_id: str) -> None:
    with pytest.raises(SecretStoreError, match="Invalid item id"):
        DirectorySecretStore(tmp_path).load_item("ssl", item_id)


def test_read_secret_file_rejects_missing_and_empty(tmp_path: Path) -> None:
    with pytest.raises(SecretStoreError, match="Cannot read"):
        read_secret_file(tmp_path / "absent")
    empty = tmp_path / "empty"
    empty.write_text("  \n", encoding="utf-8")
    with pytest.raises(SecretStoreError, match="empty"):
        read_secret_file(empty)
