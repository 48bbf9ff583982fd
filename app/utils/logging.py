"""
Logging setup for the onboarding service.

Console logging is always on; a dated log file is added when a log
directory is configured.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Libraries whose INFO output drowns the request logs
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "aiosqlite")

logger = logging.getLogger("app")

def configure_logging(level: str = "INFO", log_dir: Optional[str] = None):
    """
    Configure root logging for the process.

    Args:
        level: Name of the log level (e.g. "INFO")
        log_dir: Optional directory for the dated log file
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()]
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if log_dir:
        add_file_handler(log_dir)

def add_file_handler(log_dir: str) -> Path:
    """Attach a handler writing to ``<log_dir>/onboarding_YYYYMMDD.log``."""
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    log_file = log_path / f"onboarding_{datetime.now().strftime('%Y%m%d')}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(file_handler)
    return log_file

def log_error(error: Exception, context: Optional[str] = None):
    """
    Log an error with optional context, keeping the stack trace at debug level.

    Args:
        error: Exception to log
        context: Where the error occurred, e.g. the case being processed
    """
    if context:
        logger.error(f"{context}: {error}")
    else:
        logger.error(str(error))
    logger.debug("Stack trace:", exc_info=True)
