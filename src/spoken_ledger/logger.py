import logging
import logging.config
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_NAME = "spoken_ledger.log"


class ColourizedFormatter(logging.Formatter):
    """Colours the level name for terminal output."""

    LEVEL_COLORS = {
        logging.DEBUG: "\x1b[90m",
        logging.INFO: "\x1b[32m",
        logging.WARNING: "\x1b[33m",
        logging.ERROR: "\x1b[31m",
        logging.CRITICAL: "\x1b[31;1m",
    }
    RESET = "\x1b[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno)
        if color is None:
            return super().format(record)
        levelname = record.levelname
        record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # The file handler formats the same record.
            record.levelname = levelname


def get_logging_config(level: str | None = None, log_dir: str | None = None) -> dict:
    """dictConfig for the package loggers. httpx request lines are kept at WARNING."""
    level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    log_dir = log_dir or os.getenv("LOG_DIR")

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "colour",
        },
    }
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "filename": os.path.join(log_dir, LOG_FILE_NAME),
            "formatter": "plain",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "colour": {"()": ColourizedFormatter, "format": LOG_FORMAT},
            "plain": {"format": LOG_FORMAT},
        },
        "handlers": handlers,
        "loggers": {
            "spoken_ledger": {"handlers": list(handlers), "level": level},
            "httpx": {"handlers": list(handlers), "level": "WARNING", "propagate": False},
        },
    }


def setup_logging(level: str | None = None, log_dir: str | None = None) -> None:
    logging.config.dictConfig(get_logging_config(level, log_dir))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
