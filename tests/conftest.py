from __future__ import annotations

import logging
from typing import Iterator

import pytest

from ssl_material import generate_key
from ssl_material.logging_utils import LOGGER_NAME


@pytest.fixture(scope="session")
def key_pem() -> bytes:
    return generate_key()


@pytest.fixture(scope="session")
def other_key_pem() -> bytes:
    return generate_key()


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
