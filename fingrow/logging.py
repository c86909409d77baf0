"""
Logging setup.

Configures loguru with a stderr sink and a rotated file sink.
"""

import sys

from loguru import logger


def setup_logging(level: str | None = None, log_file: str = "logs/fingrow.log") -> None:
    """
    Configure logger with file rotation.

    Args:
        level: Minimum level (settings.log_level by default)
        log_file: Path of the rotated log file
    """
    from fingrow.config.settings import settings

    level = (level or settings.log_level).upper()

    logger.remove()
    logger.add(sys.stderr, level=level)
    logger.add(
        log_file,
        rotation="1 day",
        retention="7 days",
        level=level,
        encoding="utf-8",
    )

    logger.info(f"Logging configured (level={level}, env={settings.environment})")
