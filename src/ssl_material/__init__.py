"""TLS key and certificate material resolution."""

from .certificates import generate_self_signed, verify
from .config import MaterialConfig
from .exceptions import (
    CertParseError,
    GenerationError,
    KeyParseError,
    MissingSourceError,
    SecretStoreError,
    SslConfigurationError,
    SslMaterialError,
    UnknownSourceError,
)
from .keygen import generate_key
from .logging_utils import configure_logging
from .models import (
    ArtifactKind,
    ArtifactSpec,
    ResolutionContext,
    ResolvedMaterial,
    SourceKind,
)
from .resolver import MaterialResolver, resolve_material
from .secret_store import DirectorySecretStore
from .settings import CertificateSettings, lookup_path
from .sources import LocalFilesystem, SourceReader
from .vault import DirectoryVault

__all__ = [
    "ArtifactKind",
    "ArtifactSpec",
    "CertParseError",
    "CertificateSettings",
    "DirectorySecretStore",
    "DirectoryVault",
    "GenerationError",
    "KeyParseError",
    "LocalFilesystem",
    "MaterialConfig",
    "MaterialResolver",
    "MissingSourceError",
    "ResolutionContext",
    "ResolvedMaterial",
    "SecretStoreError",
    "SourceKind",
    "SourceReader",
    "SslConfigurationError",
    "SslMaterialError",
    "UnknownSourceError",
    "configure_logging",
    "generate_key",
    "generate_self_signed",
    "lookup_path",
    "resolve_material",
    "verify",
]
