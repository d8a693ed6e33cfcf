"""Log setup for the ssl_material namespace and per-artifact log context."""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, MutableMapping

LOGGER_NAME = "ssl_material"
DEFAULT_LOG_FILE = "logs/ssl-material.log"
DEFAULT_LOG_LEVEL = "INFO"
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 5
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    numeric_level = logging.getLevelName(level.strip().upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")
    return numeric_level


def configure_logging(
    *,
    log_file: str | Path | None = None,
    level: str | int | None = None,
) -> logging.Logger:
    """
    Send ssl_material records to a rotating log file.

    `log_file` and `level` fall back to SSL_MATERIAL_LOG_FILE and
    SSL_MATERIAL_LOG_LEVEL. Calling it again replaces the file handler, so a
    process that runs several CLI commands logs to the latest file only.
    """
    resolved_log_file = Path(
        log_file or os.environ.get("SSL_MATERIAL_LOG_FILE", DEFAULT_LOG_FILE)
    )
    numeric_level = _resolve_level(
        level or os.environ.get("SSL_MATERIAL_LOG_LEVEL", DEFAULT_LOG_LEVEL)
    )
    resolved_log_file.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)
    logger.propagate = False
    for previous in list(logger.handlers):
        if isinstance(previous, RotatingFileHandler):
            logger.removeHandler(previous)
            previous.close()

    handler = RotatingFileHandler(
        resolved_log_file,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    logger.debug("Logging to %s at %s", resolved_log_file, logging.getLevelName(numeric_level))
    return logger


class ArtifactLogAdapter(logging.LoggerAdapter):
    """Prefix each record with the identity, artifact kind and source being resolved."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        extra = self.extra or {}
        context = " ".join(f"{name}={extra[name]}" for name in ("identity", "artifact", "source"))
        return f"[{context}] {msg}", kwargs


def artifact_logger(
    logger: logging.Logger,
    *,
    identity: str,
    artifact: str,
    source: str,
) -> ArtifactLogAdapter:
    return ArtifactLogAdapter(
        logger, {"identity": identity, "artifact": artifact, "source": source}
    )
