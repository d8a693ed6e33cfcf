from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .exceptions import SslConfigurationError
from .secret_store import DirectorySecretStore
from .sources import SourceReader
from .vault import DirectoryVault


def _optional_env(name: str) -> str | None:
    value = os.environ.get(name, "").strip()
    return value or None


@dataclass(frozen=True)
class MaterialConfig:
    """Process-wide configuration for the secret store and vault backends."""

    default_secret_file: str | None = None
    secret_store_dir: str | None = None
    vault_dir: str | None = None
    vault_client: str | None = None
    vault_client_key: str | None = None

    @classmethod
    def from_env(cls) -> "MaterialConfig":
        default_secret_file = _optional_env("SSL_MATERIAL_SECRET_FILE")
        secret_store_dir = _optional_env("SSL_MATERIAL_SECRET_STORE_DIR")
        vault_dir = _optional_env("SSL_MATERIAL_VAULT_DIR")
        vault_client = _optional_env("SSL_MATERIAL_VAULT_CLIENT")
        vault_client_key = _optional_env("SSL_MATERIAL_VAULT_CLIENT_KEY")

        if default_secret_file and not Path(default_secret_file).is_file():
            raise SslConfigurationError(
                f"Secret file does not exist: {default_secret_file}"
            )
        if secret_store_dir and not Path(secret_store_dir).is_dir():
            raise SslConfigurationError(
                f"Secret store directory does not exist: {secret_store_dir}"
            )
        if vault_dir:
            if not Path(vault_dir).is_dir():
                raise SslConfigurationError(
                    f"Vault directory does not exist: {vault_dir}"
                )
            if not vault_client or not vault_client_key:
                raise SslConfigurationError(
                    "SSL_MATERIAL_VAULT_CLIENT and SSL_MATERIAL_VAULT_CLIENT_KEY "
                    "are required when SSL_MATERIAL_VAULT_DIR is set."
                )
            if not Path(vault_client_key).is_file():
                raise SslConfigurationError(
                    f"Vault client key does not exist: {vault_client_key}"
                )

        return cls(
            default_secret_file=default_secret_file,
            secret_store_dir=secret_store_dir,
            vault_dir=vault_dir,
            vault_client=vault_client,
            vault_client_key=vault_client_key,
        )

    def build_reader(self) -> SourceReader:
        secret_store = (
            DirectorySecretStore(self.secret_store_dir) if self.secret_store_dir else None
        )
        vault = None
        if self.vault_dir and self.vault_client and self.vault_client_key:
            vault = DirectoryVault(self.vault_dir, self.vault_client, self.vault_client_key)
        return SourceReader(
            secret_store=secret_store,
            vault=vault,
            default_secret_file=self.default_secret_file,
        )
