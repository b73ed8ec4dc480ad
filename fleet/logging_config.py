"""Logging configuration for the fleet revision tracker."""

import logging
import logging.config
import os
from typing import Optional

from pythonjsonlogger import jsonlogger


def setup_logging(
    log_level: str = "INFO", log_format: str = "standard", log_file: Optional[str] = None
) -> None:
    """Set up logging for the CLI, the web app and the poller."""
    formatter = "json" if log_format == "json" else "standard"

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
            },
            "detailed": {
                "format": "%(asctime)s [%(levelname)s] %(name)s %(funcName)s %(lineno)d: %(message)s"
            },
            "json": {
                "()": jsonlogger.JsonFormatter,
                "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
            },
        },
        "handlers": {
            "default": {
                "level": log_level,
                "formatter": formatter,
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "": {  # root logger
                "handlers": ["default"],
                "level": log_level,
            },
            "urllib3": {
                "level": "WARNING",
            },
        },
    }

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        logging_config["handlers"]["file"] = {
            "level": log_level,
            "formatter": "detailed",
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5,
        }
        logging_config["loggers"][""]["handlers"].append("file")

    logging.config.dictConfig(logging_config)
