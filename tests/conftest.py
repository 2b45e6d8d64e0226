"""Global pytest configuration."""

import logging

import pytest

from core.logging import APP_LOGGER_NAME


@pytest.fixture(autouse=True)
def _quiet_app_logger():
    """Keep handlers installed by one test from leaking into the next."""
    logger = logging.getLogger(APP_LOGGER_NAME)
    handlers = list(logger.handlers)
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
