import logging

import pytest

from src.config.logging import LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_cli_logging():
    """Drop handlers the CLI attached to streams CliRunner has since closed."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
