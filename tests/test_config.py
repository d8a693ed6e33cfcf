from __future__ import annotations

from pathlib import Path

import pytest

from ssl_material import (
    DirectorySecretStore,
    DirectoryVault,
    MaterialConfig,
    SslConfigurationError,
)

_ENV_NAMES = (
    "SSL_MATERIAL_SECRET_FILE",
    "SSL_MATERIAL_SECRET_STORE_DIR",
    "SSL_MATERIAL_VAULT_DIR",
    "SSL_MATERIAL_VAULT_CLIENT",
    "SSL_MATERIAL_VAULT_CLIENT_KEY",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_from_env_defaults_to_no_backends() -> None:
    config = MaterialConfig.from_env()
    reader = config.build_reader()

    assert config == MaterialConfig()
    assert reader.default_secret_file is None


def test_from_env_reads_all_settings(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, key_pem: bytes
) -> None:
    secret = tmp_path / "secret"
    secret.write_text("s3cret", encoding="utf-8")
    client_key = tmp_path / "client.pem"
    client_key.write_bytes(key_pem)
    (tmp_path / "store").mkdir()
    (tmp_path / "vault").mkdir()
    monkeypatch.setenv("SSL_MATERIAL_SECRET_FILE", str(secret))
    monkeypatch.setenv("SSL_MATERIAL_SECRET_STORE_DIR", str(tmp_path / "store"))
    monkeypatch.setenv("SSL_MATERIAL_VAULT_DIR", str(tmp_path / "vault"))
    monkeypatch.setenv("SSL_MATERIAL_VAULT_CLIENT", "web01")
    monkeypatch.setenv("SSL_MATERIAL_VAULT_CLIENT_KEY", str(client_key))

    config = MaterialConfig.from_env()
    reader = config.build_reader()

    assert config.default_secret_file == str(secret)
    assert reader.default_secret_file == str(secret)
    assert isinstance(reader.secret_store, DirectorySecretStore)
    assert isinstance(reader.vault, DirectoryVault)
    assert reader.vault.client_name == "web01"


def test_missing_secret_file_is_rejected(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SSL_MATERIAL_SECRET_FILE", str(tmp_path / "absent"))
    with pytest.raises(SslConfigurationError, match="Secret file"):
        MaterialConfig.from_env()


def test_vault_requires_client_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SSL_MATERIAL_VAULT_DIR", str(tmp_path))
    with pytest.raises(SslConfigurationError, match="SSL_MATERIAL_VAULT_CLIENT"):
        MaterialConfig.from_env()
