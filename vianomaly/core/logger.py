"""
Module for centralized, configurable logging across vianomaly packages.
"""

import logging
import os
import json
from datetime import datetime, timezone


class JSONFormatter(logging.Formatter):
    """
    Formatter that outputs log records in JSON format with keys:
    timestamp (in ISO8601 with UTC timezone), level, name, message.
    """

    def format(self, record):
        record_dict = {
            "timestamp": datetime.fromtimestamp(
                record.created, timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            record_dict["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(record_dict)


class Logger:
    """
    Central logging setup for all modules.
    """

    _configured = False

    @staticmethod
    def setup(
        level: int | None = None,
        fmt: str | None = None,
        datefmt: str = "%Y-%m-%d %H:%M:%S",
        log_file: str | None = None,
    ) -> None:
        """
        Configure the logging system once per process.

        Level falls back to VIANOMALY_LOG_LEVEL, format to VIANOMALY_LOG_FMT
        ("json" for structured output, otherwise a logging format string).
        When *log_file* (or VIANOMALY_LOG_FILE) is set, records are also
        appended to that file in the same format.
        """
        if Logger._configured:
            if log_file:
                Logger._add_file_handler(
                    log_file,
                    fmt if fmt is not None else os.getenv("VIANOMALY_LOG_FMT", ""),
                    datefmt,
                )
            return
        if level is None:
            env_level = os.getenv("VIANOMALY_LOG_LEVEL", "INFO").upper()
            effective_level = getattr(logging, env_level, logging.INFO)
        else:
            effective_level = level

        fmt_mode = fmt if fmt is not None else os.getenv("VIANOMALY_LOG_FMT", "")
        default_fmt = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
        root = logging.getLogger()
        root.handlers.clear()

        if fmt_mode.lower() == "json":
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter(datefmt=datefmt))
            root.addHandler(handler)
            root.setLevel(effective_level)
        else:
            logging.basicConfig(
                level=effective_level,
                format=fmt_mode or default_fmt,
                datefmt=datefmt,
            )
        log_path = log_file or os.getenv("VIANOMALY_LOG_FILE")
        if log_path:
            Logger._add_file_handler(log_path, fmt_mode, datefmt)
        Logger._configured = True

    @staticmethod
    def _add_file_handler(path: str, fmt_mode: str, datefmt: str) -> None:
        default_fmt = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
        handler = logging.FileHandler(path, encoding="utf-8")
        if fmt_mode.lower() == "json":
            handler.setFormatter(JSONFormatter(datefmt=datefmt))
        else:
            handler.setFormatter(
                logging.Formatter(fmt_mode or default_fmt, datefmt=datefmt)
            )
        logging.getLogger().addHandler(handler)

    @staticmethod
    def get_logger(
        name: str = "vianomaly", *, level: int | None = None, fmt: str | None = None
    ) -> logging.Logger:
        """
        Get a logger with the specified name.

        Parameters:
            name: The name of the logger.
            level: Optional logging level to set up.
            fmt: Optional format string for log messages.

        Returns:
            logging.Logger: The configured logger instance.
        """
        Logger.setup(level=level, fmt=fmt)
        return logging.getLogger(name)
