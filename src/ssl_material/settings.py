"""
Build artifact specs from a namespaced configuration tree.

A namespace is a nested mapping such as::

    {
        "server_name": "www.example.test",
        "source": "self-signed",
        "ssl_key": {"source": "secret_store", "bag": "ssl", "item": "www",
                    "item_key": "key", "encrypted": True},
        "ssl_cert": {"item_key": "cert"},
    }

Per-artifact values under `ssl_key` / `ssl_cert` win over shared top-level
values. Explicit overrides win over the namespace; the shared override names
(`source`, `dir`, `bag`, `item`, `encrypted`, `secret_file`) apply to both
artifacts.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from .exceptions import SslConfigurationError, UnknownSourceError
from .models import ArtifactSpec, ResolvedMaterial, SourceKind
from .resolver import resolve_material
from .sources import SourceReader

_DEBIAN_FAMILY = {"debian", "ubuntu"}
_REDHAT_FAMILY = {"redhat", "centos", "fedora", "scientific", "amazon"}

_SECTIONS = {"key": "ssl_key", "cert": "ssl_cert"}
_LABELS = {"key": "key", "cert": "certificate"}
_TRUE_VALUES = {"1", "true", "yes", "on"}


def lookup_path(tree: Any, keys: str | Iterable[str]) -> Any | None:
    """Walk nested mappings along `keys`; any missing step yields None."""
    path = [keys] if isinstance(keys, str) else list(keys)
    node = tree
    for key in path:
        if not isinstance(node, Mapping) or key not in node:
            return None
        node = node[key]
    return node


def default_key_dir(platform: str | None) -> str:
    normalized = (platform or "").strip().lower()
    if normalized in _DEBIAN_FAMILY:
        return "/etc/ssl/private"
    if normalized in _REDHAT_FAMILY:
        return "/etc/pki/tls/private"
    return "/etc"


def default_cert_dir(platform: str | None) -> str:
    normalized = (platform or "").strip().lower()
    if normalized in _DEBIAN_FAMILY:
        return "/etc/ssl/certs"
    if normalized in _REDHAT_FAMILY:
        return "/etc/pki/tls/certs"
    return "/etc"


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    return bool(value)


class _Cascade:
    def __init__(
        self,
        namespace: Mapping[str, Any],
        overrides: Mapping[str, Any],
        prefix: str,
    ) -> None:
        self._namespace = namespace
        self._overrides = overrides
        self._prefix = prefix
        self._section = _SECTIONS[prefix]
        self.label = _LABELS[prefix]

    def value(self, attribute: str, *, shared: bool = True) -> Any | None:
        candidates = [self._overrides.get(f"{self._prefix}_{attribute}")]
        if shared:
            candidates.append(self._overrides.get(attribute))
        candidates.append(lookup_path(self._namespace, [self._section, attribute]))
        if shared:
            candidates.append(lookup_path(self._namespace, attribute))
        for candidate in candidates:
            if candidate is not None:
                return candidate
        return None


@dataclass(frozen=True)
class CertificateSettings:
    """Materialized key and certificate configuration for one server identity."""

    name: str
    identity: str
    key_path: str
    cert_path: str
    key_spec: ArtifactSpec
    cert_spec: ArtifactSpec

    @property
    def uses_vault(self) -> bool:
        return SourceKind.VAULT in {
            SourceKind.parse(self.key_spec.source_kind),
            SourceKind.parse(self.cert_spec.source_kind),
        }

    @classmethod
    def build(
        cls,
        name: str,
        namespace: Mapping[str, Any] | None = None,
        *,
        platform: str | None = None,
        fqdn: str | None = None,
        default_secret_file: str | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> "CertificateSettings":
        if not name or not name.strip():
            raise SslConfigurationError("A certificate name is required.")
        name = name.strip()
        namespace = namespace or {}
        overrides = {k: v for k, v in (overrides or {}).items() if v is not None}

        identity = (
            overrides.get("server_name")
            or lookup_path(namespace, "server_name")
            or fqdn
        )
        if not identity or not str(identity).strip():
            raise SslConfigurationError(
                f"No server_name configured for '{name}' and no fqdn available."
            )

        key_path = overrides.get("key_path") or os.path.join(
            overrides.get("key_dir") or overrides.get("dir") or default_key_dir(platform),
            overrides.get("key_name") or f"{name}.key",
        )
        cert_path = overrides.get("cert_path") or os.path.join(
            overrides.get("cert_dir") or overrides.get("dir") or default_cert_dir(platform),
            overrides.get("cert_name") or f"{name}.pem",
        )

        return cls(
            name=name,
            identity=str(identity).strip(),
            key_path=key_path,
            cert_path=cert_path,
            key_spec=_build_spec(
                _Cascade(namespace, overrides, "key"), key_path, default_secret_file
            ),
            cert_spec=_build_spec(
                _Cascade(namespace, overrides, "cert"), cert_path, default_secret_file
            ),
        )

    def resolve(self, reader: SourceReader | None = None) -> ResolvedMaterial:
        return resolve_material(
            self.key_spec, self.cert_spec, self.identity, reader=reader
        )


def _build_spec(
    cascade: _Cascade,
    path: str,
    default_secret_file: str | None,
) -> ArtifactSpec:
    label = cascade.label
    source = cascade.value("source")
    if source is None:
        raise SslConfigurationError(f"No source configured for SSL {label}.")
    try:
        source_kind = SourceKind.parse(source)
    except UnknownSourceError as exc:
        raise UnknownSourceError(f"Invalid source for SSL {label}: {exc}") from exc

    secret_file = cascade.value("secret_file") or default_secret_file
    return ArtifactSpec(
        source_kind=source_kind,
        path=path,
        container_id=cascade.value("bag"),
        item_id=cascade.value("item"),
        item_field=cascade.value("item_key", shared=False),
        is_encrypted=_as_bool(cascade.value("encrypted") or False),
        secret_file_path=str(secret_file) if secret_file else None,
    )
