"""
Directory-backed vault with per-client sealed secrets.

An item lives in `<root>/<container_id>/<item_id>.json` as version 3 encrypted
envelopes (see `secret_store`) sealed with a random shared secret. The sibling
`<item_id>_keys.json` maps each authorized client name to that shared secret,
encrypted with the client's RSA public key (PKCS#1 v1.5) and base64 encoded.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import secrets
from pathlib import Path
from typing import Any, Mapping

from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.serialization import load_pem_public_key

from .exceptions import KeyParseError, SecretStoreError, format_exception
from .keygen import load_private_key
from .secret_store import DirectorySecretStore, decrypt_item, encrypt_item

_logger = logging.getLogger("ssl_material.vault")

KEYS_SUFFIX = "_keys"


class DirectoryVault:
    """Vault client that unseals items for a single named client."""

    def __init__(
        self,
        root: str | Path,
        client_name: str,
        client_key_path: str | Path,
    ) -> None:
        if not client_name or not client_name.strip():
            raise ValueError("client_name is required.")
        self._store = DirectorySecretStore(root)
        self._client_name = client_name.strip()
        self._client_key_path = Path(client_key_path)
        self._client_key: rsa.RSAPrivateKey | None = None

    @property
    def client_name(self) -> str:
        return self._client_name

    def _load_client_key(self) -> rsa.RSAPrivateKey:
        if self._client_key is None:
            try:
                self._client_key = load_private_key(self._client_key_path.read_bytes())
            except (OSError, KeyParseError) as exc:
                raise SecretStoreError(
                    f"Cannot load vault client key {self._client_key_path}: "
                    f"{format_exception(exc)}"
                ) from exc
        return self._client_key

    def _read_json(self, container_id: str, item_id: str) -> dict[str, Any]:
        return self._store.load_item(container_id, item_id)

    def _unseal_secret(self, container_id: str, item_id: str) -> bytes:
        sealed_keys = self._read_json(container_id, f"{item_id}{KEYS_SUFFIX}")
        sealed = sealed_keys.get(self._client_name)
        if not isinstance(sealed, str):
            raise SecretStoreError(
                f"Vault item {container_id}.{item_id} is not shared with "
                f"client '{self._client_name}'."
            )
        try:
            return self._load_client_key().decrypt(
                base64.b64decode(sealed.encode("ascii"), validate=True),
                padding.PKCS1v15(),
            )
        except (binascii.Error, ValueError) as exc:
            raise SecretStoreError(
                f"Cannot unseal vault item {container_id}.{item_id} for "
                f"client '{self._client_name}': {format_exception(exc)}"
            ) from exc

    def load_item(self, container_id: str, item_id: str) -> dict[str, Any]:
        shared_secret = self._unseal_secret(container_id, item_id)
        item = decrypt_item(self._read_json(container_id, item_id), shared_secret)
        _logger.debug(
            "Loaded vault item container=%s item=%s client=%s",
            container_id,
            item_id,
            self._client_name,
        )
        return item

    def seal_item(
        self,
        container_id: str,
        item_id: str,
        data: Mapping[str, Any],
        client_public_keys: Mapping[str, bytes],
    ) -> Path:
        """Encrypt `data` and share it with every client in `client_public_keys`."""
        if not client_public_keys:
            raise ValueError("At least one client public key is required.")
        shared_secret = secrets.token_urlsafe(32).encode("ascii")

        sealed_keys: dict[str, Any] = {"id": f"{item_id}{KEYS_SUFFIX}"}
        for client, public_pem in client_public_keys.items():
            public_key = load_pem_public_key(public_pem)
            if not isinstance(public_key, rsa.RSAPublicKey):
                raise ValueError(f"Client '{client}' must have an RSA public key.")
            sealed_keys[client] = base64.b64encode(
                public_key.encrypt(shared_secret, padding.PKCS1v15())
            ).decode("ascii")

        item = {"id": item_id, **{k: v for k, v in data.items() if k != "id"}}
        item_path = self._store.item_path(container_id, item_id)
        keys_path = self._store.item_path(container_id, f"{item_id}{KEYS_SUFFIX}")
        item_path.parent.mkdir(parents=True, exist_ok=True)
        item_path.write_text(
            json.dumps(encrypt_item(item, shared_secret), indent=2, sort_keys=True),
            encoding="utf-8",
        )
        keys_path.write_text(
            json.dumps(sealed_keys, indent=2, sort_keys=True), encoding="utf-8"
        )
        _logger.info(
            "Sealed vault item container=%s item=%s clients=%s",
            container_id,
            item_id,
            ",".join(sorted(client_public_keys)),
        )
        return item_path
