"""
Directory-backed secret store with optionally encrypted items.

Layout: `<root>/<container_id>/<item_id>.json`, one JSON object per item.
Encrypted items keep `id` in clear text and wrap every other field in an
envelope:

- version 1: AES-256-CBC, fields `encrypted_data` and `iv`.
- version 2: version 1 plus `hmac`, an HMAC-SHA256 of the base64 ciphertext
  keyed with the raw secret.
- version 3: AES-256-GCM, fields `encrypted_data`, `iv` and `auth_tag`.

The cipher key is the SHA-256 digest of the secret; the plaintext is the JSON
document `{"json_wrapper": <value>}`.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Mapping

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .exceptions import SecretStoreError, format_exception

_logger = logging.getLogger("ssl_material.secret_store")

_NAME_PATTERN = re.compile(r"^[\w.:-]+$")
_GCM_NONCE_BYTES = 12
_GCM_TAG_BYTES = 16


def read_secret_file(path: str | Path) -> bytes:
    secret_path = Path(path)
    try:
        secret = secret_path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise SecretStoreError(
            f"Cannot read secret file {secret_path}: {format_exception(exc)}"
        ) from exc
    if not secret:
        raise SecretStoreError(f"Secret file is empty: {secret_path}")
    return secret.encode("utf-8")


def _b64decode(envelope: Mapping[str, Any], field: str) -> bytes:
    raw = envelope.get(field)
    if not isinstance(raw, str):
        raise SecretStoreError(f"Encrypted value is missing '{field}'.")
    try:
        return base64.b64decode(raw.encode("ascii"))
    except ValueError as exc:
        raise SecretStoreError(f"Invalid base64 for '{field}'.") from exc


def _unwrap(plaintext: bytes) -> Any:
    try:
        wrapper = json.loads(plaintext.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise SecretStoreError("Decrypted value is not valid JSON.") from exc
    if not isinstance(wrapper, dict) or "json_wrapper" not in wrapper:
        raise SecretStoreError("Decrypted value is missing json_wrapper.")
    return wrapper["json_wrapper"]


def encrypt_value(value: Any, secret: bytes) -> dict[str, Any]:
    """Seal `value` into a version 3 envelope."""
    key = hashlib.sha256(secret).digest()
    nonce = os.urandom(_GCM_NONCE_BYTES)
    plaintext = json.dumps({"json_wrapper": value}).encode("utf-8")
    sealed = AESGCM(key).encrypt(nonce, plaintext, None)
    return {
        "encrypted_data": base64.b64encode(sealed[:-_GCM_TAG_BYTES]).decode("ascii"),
        "iv": base64.b64encode(nonce).decode("ascii"),
        "auth_tag": base64.b64encode(sealed[-_GCM_TAG_BYTES:]).decode("ascii"),
        "version": 3,
        "cipher": "aes-256-gcm",
    }


def decrypt_value(envelope: Mapping[str, Any], secret: bytes) -> Any:
    if not isinstance(envelope, Mapping):
        raise SecretStoreError("Encrypted value must be a JSON object.")
    version = envelope.get("version", 1)
    key = hashlib.sha256(secret).digest()
    ciphertext = _b64decode(envelope, "encrypted_data")
    iv = _b64decode(envelope, "iv")

    if version in (1, 2):
        if version == 2:
            expected = hmac.new(
                secret, str(envelope["encrypted_data"]).encode("ascii"), hashlib.sha256
            ).digest()
            if not hmac.compare_digest(expected, _b64decode(envelope, "hmac")):
                raise SecretStoreError("Encrypted value failed HMAC validation.")
        try:
            decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
        except ValueError as exc:
            raise SecretStoreError(
                f"Failed to decrypt value: {format_exception(exc)}"
            ) from exc
        return _unwrap(plaintext)

    if version == 3:
        tag = _b64decode(envelope, "auth_tag")
        try:
            plaintext = AESGCM(key).decrypt(iv, ciphertext + tag, None)
        except (InvalidTag, ValueError) as exc:
            raise SecretStoreError(
                f"Failed to decrypt value: {format_exception(exc)}"
            ) from exc
        return _unwrap(plaintext)

    raise SecretStoreError(f"Unsupported encrypted value version: {version}")


def encrypt_item(item: Mapping[str, Any], secret: bytes) -> dict[str, Any]:
    return {
        field: value if field == "id" else encrypt_value(value, secret)
        for field, value in item.items()
    }


def decrypt_item(item: Mapping[str, Any], secret: bytes) -> dict[str, Any]:
    return {
        field: value if field == "id" else decrypt_value(value, secret)
        for field, value in item.items()
    }


def _validate_name(value: str, label: str) -> str:
    if not value or not _NAME_PATTERN.match(value) or value in {".", ".."}:
        raise SecretStoreError(f"Invalid {label}: {value!r}")
    return value


class DirectorySecretStore:
    """Secret store client reading JSON items from a local directory tree."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def item_path(self, container_id: str, item_id: str) -> Path:
        return (
            self._root
            / _validate_name(container_id, "container id")
            / f"{_validate_name(item_id, 'item id')}.json"
        )

    def load_item(
        self,
        container_id: str,
        item_id: str,
        secret_file_path: str | None = None,
    ) -> dict[str, Any]:
        path = self.item_path(container_id, item_id)
        try:
            item = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise SecretStoreError(
                f"Secret store item not found: {container_id}.{item_id}"
            ) from exc
        except (OSError, json.JSONDecodeError) as exc:
            raise SecretStoreError(
                f"Cannot load secret store item {container_id}.{item_id}: "
                f"{format_exception(exc)}"
            ) from exc
        if not isinstance(item, dict):
            raise SecretStoreError(
                f"Secret store item {container_id}.{item_id} is not a JSON object."
            )

        if secret_file_path is not None:
            item = decrypt_item(item, read_secret_file(secret_file_path))
        _logger.debug(
            "Loaded secret store item container=%s item=%s encrypted=%s",
            container_id,
            item_id,
            secret_file_path is not None,
        )
        return item

    def write_item(
        self,
        container_id: str,
        item_id: str,
        data: Mapping[str, Any],
        secret_file_path: str | None = None,
    ) -> Path:
        path = self.item_path(container_id, item_id)
        item = {"id": item_id, **{k: v for k, v in data.items() if k != "id"}}
        if secret_file_path is not None:
            item = encrypt_item(item, read_secret_file(secret_file_path))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(item, indent=2, sort_keys=True), encoding="utf-8")
        _logger.info(
            "Wrote secret store item container=%s item=%s encrypted=%s",
            container_id,
            item_id,
            secret_file_path is not None,
        )
        return path
