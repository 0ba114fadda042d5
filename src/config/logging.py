"""Logging setup for the resolve-diff command."""

import logging

LOGGER_NAME = "ref_preflight"


def get_logger(name: str = "") -> logging.Logger:
    """Return a logger under the ref_preflight hierarchy."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME)


def configure_logging(debug: bool = False) -> logging.Logger:
    """Send log records to stderr so stdout only carries the diff."""
    level = logging.DEBUG if debug else logging.INFO
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Drop handlers from earlier invocations in the same process
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("[resolve-diff] %(levelname)s %(message)s"))
    logger.addHandler(handler)
    return logger
