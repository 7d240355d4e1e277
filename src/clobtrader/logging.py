from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

PACKAGE_LOGGER = "clobtrader"
NOISY_LOGGERS = ("aiohttp.access", "aiohttp.client", "aiohttp.internal")
LOG_FILE_NAME = "clobtrader.log"


def configure_logging(log_dir: Path | str | None = None, level: str | None = None) -> logging.Logger:
    """Attach console and optional rotating-file handlers to the ``clobtrader`` loggers.

    The root logger and the host application's handlers are left alone; records
    from this package stop at the ``clobtrader`` logger. Calling this again
    replaces the handlers installed by the previous call.

    Args:
        log_dir: Directory for ``clobtrader.log`` (10MB, 5 backups). Console only when None.
        level: Level name; defaults to ``CLOBTRADER_LOG_LEVEL`` or INFO.

    Returns:
        The configured package logger.
    """
    level_name = (level or os.environ.get("CLOBTRADER_LOG_LEVEL", "INFO")).upper()
    resolved_level = getattr(logging, level_name, logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(resolved_level)
    package_logger.propagate = False

    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(resolved_level)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / LOG_FILE_NAME,
            maxBytes=10*1024*1024,
            backupCount=5
        )
        file_handler.setLevel(resolved_level)
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    # aiohttp request logs only at DEBUG
    aiohttp_level = logging.DEBUG if resolved_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(aiohttp_level)

    package_logger.debug("Logging configured at %s (log_dir=%s)", level_name, log_dir)
    return package_logger
