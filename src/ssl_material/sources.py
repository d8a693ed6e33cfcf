from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Protocol

from .exceptions import SslConfigurationError, format_exception
from .models import ArtifactSpec, SourceKind

_logger = logging.getLogger("ssl_material.sources")


class Filesystem(Protocol):
    def exists(self, path: str) -> bool: ...

    def read_all(self, path: str) -> bytes: ...


class SecretStoreClient(Protocol):
    def load_item(
        self,
        container_id: str,
        item_id: str,
        secret_file_path: str | None = None,
    ) -> Mapping[str, Any]: ...


class VaultClient(Protocol):
    def load_item(self, container_id: str, item_id: str) -> Mapping[str, Any]: ...


class LocalFilesystem:
    def exists(self, path: str) -> bool:
        return Path(path).exists()

    def read_all(self, path: str) -> bytes:
        return Path(path).read_bytes()


def _field_bytes(item: Mapping[str, Any], field: str) -> bytes | None:
    value = item.get(field)
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    return None


class SourceReader:
    """
    Fetch raw artifact bytes from a file, the secret store or the vault.

    `read()` returns None when the source has nothing to offer. Secret store and
    vault failures of any kind (missing item or field, bad secret, backend error)
    are reported the same way; file I/O errors other than a missing path raise.
    """

    def __init__(
        self,
        *,
        filesystem: Filesystem | None = None,
        secret_store: SecretStoreClient | None = None,
        vault: VaultClient | None = None,
        default_secret_file: str | None = None,
    ) -> None:
        self._filesystem = filesystem or LocalFilesystem()
        self._secret_store = secret_store
        self._vault = vault
        self._default_secret_file = default_secret_file

    @property
    def default_secret_file(self) -> str | None:
        return self._default_secret_file

    @property
    def secret_store(self) -> SecretStoreClient | None:
        return self._secret_store

    @property
    def vault(self) -> VaultClient | None:
        return self._vault

    def read(self, spec: ArtifactSpec) -> bytes | None:
        kind = SourceKind.parse(spec.source_kind)
        if kind in (SourceKind.FILE, SourceKind.SELF_SIGNED):
            return self.read_path(_require(spec, "path"))
        if kind == SourceKind.SECRET_STORE:
            return self.read_secret_store(spec)
        return self.read_vault(spec)

    def read_path(self, path: str) -> bytes | None:
        if not self._filesystem.exists(path):
            _logger.debug("Source path does not exist path=%s", path)
            return None
        content = self._filesystem.read_all(path)
        _logger.debug("Read source path=%s bytes=%d", path, len(content))
        return content

    def read_secret_store(self, spec: ArtifactSpec) -> bytes | None:
        container_id = _require(spec, "container_id")
        item_id = _require(spec, "item_id")
        item_field = _require(spec, "item_field")
        if self._secret_store is None:
            _logger.warning(
                "No secret store client configured for %s", spec.describe()
            )
            return None

        secret_file = None
        if spec.is_encrypted:
            secret_file = spec.secret_file_path or self._default_secret_file
        try:
            item = self._secret_store.load_item(container_id, item_id, secret_file)
            return _field_bytes(item, item_field)
        except Exception as exc:
            _logger.warning(
                "Secret store lookup failed for %s: %s",
                spec.describe(),
                format_exception(exc),
            )
            return None

    def read_vault(self, spec: ArtifactSpec) -> bytes | None:
        container_id = _require(spec, "container_id")
        item_id = _require(spec, "item_id")
        item_field = _require(spec, "item_field")
        if self._vault is None:
            _logger.warning("No vault client configured for %s", spec.describe())
            return None

        try:
            item = self._vault.load_item(container_id, item_id)
            return _field_bytes(item, item_field)
        except Exception as exc:
            _logger.warning(
                "Vault lookup failed for %s: %s",
                spec.describe(),
                format_exception(exc),
            )
            return None


def _require(spec: ArtifactSpec, attribute: str) -> str:
    value = getattr(spec, attribute)
    if not value:
        raise SslConfigurationError(
            f"{attribute} is required for source {spec.describe()}"
        )
    return value
