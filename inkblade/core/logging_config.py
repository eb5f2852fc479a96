"""
Process-wide logging setup for the combat core.

Every module logs through `logging.getLogger(__name__)`, so all of the
package's records sit under the `inkblade` logger. configure_logging gives
that logger its own level and leaves the root logger at WARNING, which keeps
third-party chatter out of a debug session. INKBLADE_LOG_LEVEL overrides the
package level without touching code.
"""
import logging
import os

PACKAGE_LOGGER = "inkblade"
LOG_LEVEL_ENV = "INKBLADE_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"
DATE_FORMAT = "%H:%M:%S"


def resolve_level(default_level: int = logging.INFO) -> int:
    """Level named by INKBLADE_LOG_LEVEL, or `default_level` if unset or unknown."""
    level_name = os.getenv(LOG_LEVEL_ENV)
    if not level_name:
        return default_level
    level = logging.getLevelName(level_name.strip().upper())
    return level if isinstance(level, int) else default_level


def configure_logging(default_level: int = logging.INFO) -> logging.Logger:
    """Configure the root handler and the package logger level.

    Returns:
        The `inkblade` package logger
    """
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT, datefmt=DATE_FORMAT)
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(resolve_level(default_level))
    return package_logger
