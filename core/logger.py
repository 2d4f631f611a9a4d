# core/logger.py
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() == "true"


def _file_handler(formatter: logging.Formatter, level: int) -> logging.Handler | None:
    log_file = os.getenv("LOG_FILE", "/data/food_explorer.log")
    try:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handler = RotatingFileHandler(
            log_file,
            maxBytes=int(os.getenv("LOG_MAX_BYTES", str(2 * 1024 * 1024))),
            backupCount=int(os.getenv("LOG_BACKUPS", "3")),
        )
    except Exception as e:
        logging.getLogger(__name__).warning("Failed to initialize file logging at %s: %s", log_file, e)
        return None
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging():
    """
    Configure the root logger once from LOG_* environment variables.
    Console output goes to stderr; stdout is reserved for rendered catalog pages.
    """
    global _configured
    if _configured:
        return

    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)

    # Leave handlers installed by a host application (or pytest) alone
    if not root.handlers:
        if _env_flag("LOG_TO_CONSOLE", "true"):
            console = logging.StreamHandler(sys.stderr)
            console.setLevel(level)
            console.setFormatter(formatter)
            root.addHandler(console)

        if _env_flag("LOG_TO_FILE", "false"):
            handler = _file_handler(formatter, level)
            if handler is not None:
                root.addHandler(handler)

    _configured = True


def get_logger(name: str | None = None) -> logging.Logger:
    setup_logging()
    return logging.getLogger(name)
