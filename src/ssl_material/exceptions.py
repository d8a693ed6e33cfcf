from __future__ import annotations


class SslMaterialError(RuntimeError):
    """Base error for key and certificate material resolution."""


class SslConfigurationError(SslMaterialError):
    """Configuration is invalid or incomplete."""


class UnknownSourceError(SslConfigurationError):
    """An artifact names a source kind outside the supported set."""


class MissingSourceError(SslMaterialError):
    """A non-self-signed source produced no content."""


class KeyParseError(SslMaterialError):
    """Private key bytes could not be parsed."""


class CertParseError(SslMaterialError):
    """Certificate bytes could not be parsed."""


class GenerationError(SslMaterialError):
    """A cryptographic primitive failed while generating material."""


class SecretStoreError(SslMaterialError):
    """A secret store or vault item could not be loaded or decrypted."""


def format_exception(exc: BaseException) -> str:
    details = str(exc).strip()
    if not details and getattr(exc, "args", None):
        details = ", ".join(str(a) for a in exc.args if a)
    if details:
        return f"{type(exc).__name__}: {details}"
    return type(exc).__name__
