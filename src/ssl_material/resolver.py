from __future__ import annotations

import logging

from .certificates import generate_self_signed, verify
from .config import MaterialConfig
from .exceptions import (
    CertParseError,
    MissingSourceError,
    SslConfigurationError,
    UnknownSourceError,
)
from .keygen import generate_key
from .logging_utils import ArtifactLogAdapter, artifact_logger
from .models import (
    ArtifactKind,
    ArtifactSpec,
    ResolutionContext,
    ResolvedMaterial,
    SourceKind,
)
from .sources import SourceReader

_logger = logging.getLogger("ssl_material.resolver")


def _require_identity(identity: str | None) -> str:
    if not identity or not identity.strip():
        raise SslConfigurationError("A non-empty server identity is required.")
    return identity.strip()


class MaterialResolver:
    """Resolve a private key and its certificate from configured sources."""

    def __init__(self, reader: SourceReader | None = None) -> None:
        self._reader = reader or SourceReader()

    @property
    def reader(self) -> SourceReader:
        return self._reader

    def resolve_material(
        self,
        key_spec: ArtifactSpec,
        cert_spec: ArtifactSpec,
        identity: str,
    ) -> ResolvedMaterial:
        """
        Resolve the key, then the certificate bound to it.

        The certificate is never attempted when the key fails.
        """
        identity = _require_identity(identity)
        key_bytes = self.resolve_artifact(
            ArtifactKind.KEY, key_spec, ResolutionContext(identity=identity)
        )
        cert_bytes = self.resolve_artifact(
            ArtifactKind.CERTIFICATE,
            cert_spec,
            ResolutionContext(identity=identity, key_bytes=key_bytes),
        )
        _logger.info("Resolved TLS material identity=%s", identity)
        return ResolvedMaterial(key_bytes=key_bytes, cert_bytes=cert_bytes)

    def resolve_artifact(
        self,
        kind: ArtifactKind,
        spec: ArtifactSpec,
        context: ResolutionContext,
    ) -> bytes:
        try:
            source_kind = SourceKind.parse(spec.source_kind)
        except UnknownSourceError as exc:
            raise UnknownSourceError(
                f"Cannot resolve SSL {kind.value} from {spec.describe()}: {exc}"
            ) from exc

        log = artifact_logger(
            _logger,
            identity=context.identity,
            artifact=kind.value,
            source=spec.describe(),
        )
        log.debug("Resolving")
        if source_kind == SourceKind.SELF_SIGNED:
            if kind == ArtifactKind.KEY:
                return self._resolve_self_signed_key(spec, log)
            return self._resolve_self_signed_certificate(spec, context, log)

        content = self._reader.read(spec)
        if not content:
            log.error("No content found")
            raise MissingSourceError(
                f"Cannot read SSL {kind.value} from {spec.describe()}"
            )
        return content

    def _resolve_self_signed_key(self, spec: ArtifactSpec, log: ArtifactLogAdapter) -> bytes:
        existing = self._reader.read(spec)
        if existing is not None:
            log.info("Reusing existing self-signed key")
            return existing
        log.info("Generating self-signed key")
        return generate_key()

    def _resolve_self_signed_certificate(
        self,
        spec: ArtifactSpec,
        context: ResolutionContext,
        log: ArtifactLogAdapter,
    ) -> bytes:
        if context.key_bytes is None:
            raise SslConfigurationError(
                "A resolved key is required to resolve a self-signed certificate."
            )
        existing = self._reader.read(spec)
        if existing is not None and self._matches(existing, context, log):
            log.info("Reusing existing self-signed certificate")
            return existing
        log.info("Generating self-signed certificate")
        return generate_self_signed(context.key_bytes, context.identity)

    @staticmethod
    def _matches(
        cert_bytes: bytes, context: ResolutionContext, log: ArtifactLogAdapter
    ) -> bool:
        try:
            matches = verify(context.key_bytes or b"", cert_bytes, context.identity)
        except CertParseError as exc:
            log.warning("Existing certificate is unreadable: %s", exc)
            return False
        if not matches:
            log.info("Existing certificate does not match key or identity")
        return matches


def resolve_material(
    key_spec: ArtifactSpec,
    cert_spec: ArtifactSpec,
    identity: str,
    *,
    reader: SourceReader | None = None,
) -> ResolvedMaterial:
    """Resolve key and certificate; without a reader, use MaterialConfig.from_env()."""
    if reader is None:
        reader = MaterialConfig.from_env().build_reader()
    return MaterialResolver(reader).resolve_material(key_spec, cert_spec, identity)
