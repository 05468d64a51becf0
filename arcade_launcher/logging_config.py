#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""
Logging setup for Arcade Launcher.

Every module logs through ``logging.getLogger(__name__)``; this module only
wires handlers onto the root logger:
- compact console formatter (optionally colored on a TTY)
- optional JSON output for machine consumption (ARCADE_LAUNCHER_LOG_JSON=1)
- rotating main log file plus a warnings-and-above error log
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "arcade_launcher"
DEFAULT_MAX_LOG_SIZE = "10MB"

# =====================================================================================================
# Formatters
# =====================================================================================================


class FastFormatter(logging.Formatter):
    """Level-dependent console formatter."""

    def __init__(self, enable_colors: bool = False):
        super().__init__()
        self.enable_colors = enable_colors

        self._formats = {
            logging.ERROR: "[{asctime}] ERROR   [{name}] {message}",
            logging.WARNING: "[{asctime}] WARNING [{name}] {message}",
            logging.INFO: "[{asctime}] INFO    {message}",
            logging.DEBUG: "[{asctime}] DEBUG   {name}:{lineno} - {message}"
        }
        self._formatters = {
            level: logging.Formatter(fmt, style='{', datefmt='%H:%M:%S')
            for level, fmt in self._formats.items()
        }

        self.colors = {
            'ERROR': '\033[91m',
            'WARNING': '\033[93m',
            'INFO': '\033[92m',
            'DEBUG': '\033[94m',
            'RESET': '\033[0m'
        } if enable_colors else {}

    def format(self, record):
        formatter = self._formatters.get(record.levelno, self._formatters[logging.INFO])
        text = formatter.format(record)
        color = self.colors.get(record.levelname)
        if color:
            return f"{color}{text}{self.colors['RESET']}"
        return text


class JsonFormatter(logging.Formatter):
    """Structured JSON formatter (optional)."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "pathname": record.pathname,
            "lineno": record.lineno,
            "thread": record.threadName,
            "process": record.process,
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


# =====================================================================================================
# Setup
# =====================================================================================================


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[str] = None,
    enable_file_logging: bool = False,
    enable_console_logging: bool = True,
    max_log_size: str = DEFAULT_MAX_LOG_SIZE,
    backup_count: int = 3,
    structured_json: Optional[bool] = None
) -> Dict[str, Any]:
    """Configure the root logger.

    Args:
        log_level: Level name (DEBUG, INFO, ...); unknown names fall back to INFO.
        log_dir: Directory for log files, ``logs`` when omitted.
        enable_file_logging: Attach the rotating file handlers.
        enable_console_logging: Attach a stderr console handler.
        max_log_size: Rotation size such as ``"10MB"``.
        backup_count: Number of rotated files kept.
        structured_json: Force JSON output on or off; ``None`` reads the
            ``ARCADE_LAUNCHER_LOG_JSON`` environment variable.

    Returns:
        Dict with the attached ``handlers`` and the resolved ``log_dir``.
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    log_dir_path = Path(log_dir) if log_dir else Path("logs")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    handlers: Dict[str, logging.Handler] = {}
    use_json = structured_json if structured_json is not None else _env_bool("ARCADE_LAUNCHER_LOG_JSON")

    if enable_console_logging:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)

        enable_colors = (hasattr(sys.stderr, 'isatty') and
                         sys.stderr.isatty() and
                         os.environ.get('TERM') != 'dumb')

        console_handler.setFormatter(JsonFormatter() if use_json else FastFormatter(enable_colors=enable_colors))
        root_logger.addHandler(console_handler)
        handlers['console'] = console_handler

    if enable_file_logging:
        log_dir_path.mkdir(parents=True, exist_ok=True)
        size_bytes = _parse_size_string(max_log_size)

        main_handler = logging.handlers.RotatingFileHandler(
            str(log_dir_path / "arcade_launcher.log"),
            maxBytes=size_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        main_handler.setLevel(numeric_level)
        main_handler.setFormatter(JsonFormatter() if use_json else FastFormatter())
        root_logger.addHandler(main_handler)
        handlers['main_file'] = main_handler

        error_handler = logging.handlers.RotatingFileHandler(
            str(log_dir_path / "errors.log"),
            maxBytes=size_bytes // 2,
            backupCount=backup_count,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.WARNING)
        error_handler.setFormatter(JsonFormatter() if use_json else FastFormatter())
        root_logger.addHandler(error_handler)
        handlers['error_file'] = error_handler

    logging.getLogger(ROOT_LOGGER_NAME).debug(
        "Logging initialized: level=%s file=%s json=%s", log_level, enable_file_logging, use_json
    )

    return {
        'handlers': handlers,
        'log_dir': log_dir_path
    }


def _parse_size_string(size_str: str) -> int:
    """Parse size string into bytes."""
    size_str = size_str.upper().strip()

    multipliers = {
        'KB': 1024,
        'MB': 1024 ** 2,
        'GB': 1024 ** 3,
        'B': 1,
    }

    for suffix, multiplier in multipliers.items():
        if size_str.endswith(suffix):
            try:
                number = float(size_str[:-len(suffix)].strip())
                return int(number * multiplier)
            except ValueError:
                continue

    try:
        return int(float(size_str))
    except ValueError:
        pass

    return 10 * 1024 * 1024
