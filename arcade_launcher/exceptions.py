#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""
Arcade Launcher - Exception Classes

All project-specific exceptions live here. Unreadable inputs (missing
directories, corrupt archives, absent cache files) are not errors in this
project; they degrade to empty results and are logged. Exceptions are
reserved for boundary failures the caller has to act on.
"""

from datetime import datetime
from typing import Dict, Any, Optional


class BaseError(Exception):
    """Base class for all project-specific errors."""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.error_code = error_code or "ERROR"
        self.details = details or {}
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """Converts the exception to a dictionary for structured logging."""
        return {
            'error_code': self.error_code,
            'message': str(self),
            'details': self.details,
            'timestamp': self.timestamp.isoformat()
        }


# =====================================================================================================
# Configuration-related errors
# =====================================================================================================

class ConfigurationError(BaseError):
    """Raised when the configuration file cannot be read or validated."""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 file_path: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        config_details = details or {}
        if file_path:
            config_details['file_path'] = file_path
        super().__init__(message, error_code or "CONFIG_ERROR", config_details)


# =====================================================================================================
# IO and data-related errors
# =====================================================================================================

class DataError(BaseError):
    """Base class for data-related errors."""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code or "DATA_ERROR", details)


class ParseError(DataError):
    """Raised when the emulator's machine list contains no machine blocks."""

    def __init__(self, message: str, source: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        parse_details = details or {}
        if source:
            parse_details['source'] = source
        super().__init__(message, "PARSE_ERROR", parse_details)


# =====================================================================================================
# External process errors
# =====================================================================================================

class ExternalProcessError(BaseError):
    """Raised when the emulator executable cannot be started."""

    def __init__(self, message: str, executable: Optional[str] = None,
                 arguments: Optional[list] = None,
                 details: Optional[Dict[str, Any]] = None):
        process_details = details or {}
        if executable:
            process_details['executable'] = str(executable)
        if arguments:
            process_details['arguments'] = list(arguments)
        super().__init__(message, "EXTERNAL_PROCESS_ERROR", process_details)
