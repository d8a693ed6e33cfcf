from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .exceptions import UnknownSourceError


class SourceKind(str, Enum):
    """Where an artifact's content comes from."""

    FILE = "file"
    SECRET_STORE = "secret_store"
    VAULT = "vault"
    SELF_SIGNED = "self_signed"

    @classmethod
    def parse(cls, value: SourceKind | str | None) -> SourceKind:
        if isinstance(value, SourceKind):
            return value
        if value is None:
            raise UnknownSourceError("source_kind is required.")
        normalized = str(value).strip().lower().replace("-", "_")
        aliases = {
            "file": cls.FILE,
            "secret_store": cls.SECRET_STORE,
            "data_bag": cls.SECRET_STORE,
            "vault": cls.VAULT,
            "chef_vault": cls.VAULT,
            "self_signed": cls.SELF_SIGNED,
        }
        resolved = aliases.get(normalized)
        if resolved is None:
            raise UnknownSourceError(
                f"Unknown source kind '{value}'. "
                "Use one of: file, secret_store, vault, self_signed."
            )
        return resolved


class ArtifactKind(str, Enum):
    KEY = "key"
    CERTIFICATE = "certificate"


@dataclass(frozen=True)
class ArtifactSpec:
    """
    Fully materialized source configuration for one artifact.

    `path` is used by the file and self_signed sources. The secret store reads
    `container_id`/`item_id`/`item_field` and decrypts with `secret_file_path`
    when `is_encrypted` is set. The vault reads `container_id`/`item_id`/`item_field`.
    """

    source_kind: SourceKind | str
    path: str | None = None
    container_id: str | None = None
    item_id: str | None = None
    item_field: str | None = None
    is_encrypted: bool = False
    secret_file_path: str | None = None

    @classmethod
    def from_file(cls, path: str) -> ArtifactSpec:
        return cls(source_kind=SourceKind.FILE, path=path)

    @classmethod
    def self_signed(cls, path: str) -> ArtifactSpec:
        return cls(source_kind=SourceKind.SELF_SIGNED, path=path)

    @classmethod
    def from_secret_store(
        cls,
        container_id: str,
        item_id: str,
        item_field: str,
        *,
        is_encrypted: bool = False,
        secret_file_path: str | None = None,
    ) -> ArtifactSpec:
        return cls(
            source_kind=SourceKind.SECRET_STORE,
            container_id=container_id,
            item_id=item_id,
            item_field=item_field,
            is_encrypted=is_encrypted,
            secret_file_path=secret_file_path,
        )

    @classmethod
    def from_vault(cls, container_id: str, item_id: str, item_field: str) -> ArtifactSpec:
        return cls(
            source_kind=SourceKind.VAULT,
            container_id=container_id,
            item_id=item_id,
            item_field=item_field,
        )

    def describe(self) -> str:
        kind = (
            self.source_kind.value
            if isinstance(self.source_kind, SourceKind)
            else str(self.source_kind)
        )
        if kind in {SourceKind.SECRET_STORE.value, SourceKind.VAULT.value}:
            return f"{kind}: {self.container_id}.{self.item_id}->{self.item_field}"
        return f"{kind}: {self.path}"


@dataclass(frozen=True)
class ResolutionContext:
    """Inputs the certificate artifact needs from the key artifact."""

    identity: str
    key_bytes: bytes | None = None


@dataclass(frozen=True)
class ResolvedMaterial:
    """PEM-encoded key and certificate produced by one resolution call."""

    key_bytes: bytes
    cert_bytes: bytes

    def __post_init__(self) -> None:
        if not self.key_bytes:
            raise ValueError("key_bytes must be non-empty.")
        if not self.cert_bytes:
            raise ValueError("cert_bytes must be non-empty.")

    def to_dict(self) -> dict[str, str]:
        return {
            "key_pem": self.key_bytes.decode("utf-8"),
            "cert_pem": self.cert_bytes.decode("utf-8"),
        }
