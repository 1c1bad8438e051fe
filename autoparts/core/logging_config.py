import logging
import logging.config
import os
from datetime import datetime
from typing import Any, Dict
from autoparts.core.config import settings

LOG_CATEGORIES = ("app", "access", "error")

FORMATTERS = {
    "default": {
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        "datefmt": "%Y-%m-%d %H:%M:%S",
    },
    "detailed": {
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(module)s - %(funcName)s:%(lineno)d - %(message)s",
        "datefmt": "%Y-%m-%d %H:%M:%S",
    },
    "access": {
        "format": "%(asctime)s - %(message)s",
        "datefmt": "%Y-%m-%d %H:%M:%S",
    },
}


def _rotating_file(log_dir: str, category: str, level: str, formatter: str) -> Dict[str, Any]:
    """Daily-named rotating file under <log_dir>/<category>/"""
    current_date = datetime.now().strftime("%Y-%m-%d")
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": formatter,
        "filename": os.path.join(log_dir, category, f"{category}-{current_date}.log"),
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
    }


def build_logging_config(log_dir: str, level: str) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": FORMATTERS,
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
            "app_file": _rotating_file(log_dir, "app", level, "detailed"),
            "error_file": _rotating_file(log_dir, "error", "ERROR", "detailed"),
            "access_file": _rotating_file(log_dir, "access", "INFO", "access"),
        },
        "loggers": {
            "": {
                "level": level,
                "handlers": ["console", "app_file", "error_file"],
                "propagate": False,
            },
            # Request lines from LoggingMiddleware and uvicorn go to the access log only
            "access": {"level": "INFO", "handlers": ["access_file"], "propagate": False},
            "uvicorn.access": {"level": "INFO", "handlers": ["access_file"], "propagate": False},
            "sqlalchemy.engine": {"level": "WARNING", "handlers": ["app_file"], "propagate": False},
        },
    }


def setup_logging():
    """Setup application logging configuration"""
    log_dir = settings.LOG_DIR
    for category in LOG_CATEGORIES:
        os.makedirs(os.path.join(log_dir, category), exist_ok=True)

    logging.config.dictConfig(build_logging_config(log_dir, settings.LOG_LEVEL))

    logger = logging.getLogger(__name__)
    logger.info(f"📝 Logging configured: level {settings.LOG_LEVEL}, directory {log_dir}/")
