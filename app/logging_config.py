# app/logging_config.py
import logging
from typing import Optional

from app.config import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_FILE_NAME = "bomroll.log"

# Library loggers that drown out BOM traversal output at DEBUG
QUIET_LOGGERS = ("sqlalchemy.engine", "multipart", "httpx")


def configure_logging(level_override: Optional[str] = None) -> None:
    """
    Root logger setup shared by the API and the CLI:

    - Reset any existing handlers on the root logger.
    - Attach a StreamHandler (stderr) for console output.
    - Also attach a FileHandler to <LOG_DIR>/bomroll.log.
    - Use `level_override`, else LOG_LEVEL from settings (default INFO).
    """
    settings = get_settings()

    level_name = (level_override or settings.log_level or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    root_logger = logging.getLogger()
    for h in list(root_logger.handlers):
        root_logger.removeHandler(h)
        h.close()

    root_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_dir = settings.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    root_logger.debug("Logging configured (level=%s, file=%s)", level_name, log_dir / LOG_FILE_NAME)
