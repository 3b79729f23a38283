"""
Log sanitization utilities to prevent credential leakage.

Redacts credentials, tokens and signed URL signatures from log messages
and error strings, and installs the package's stderr log handler.
"""

import logging
import os
import sys
from typing import Optional
import re


# Patterns that might indicate sensitive data
SENSITIVE_PATTERNS = [
    (re.compile(r'(password["\']?\s*[:=]\s*["\']?)([^"\'\s]+)', re.IGNORECASE), r'\1***REDACTED***'),
    (re.compile(r'(client_secret["\']?\s*[:=]\s*["\']?)([^"\'\s]+)', re.IGNORECASE), r'\1***REDACTED***'),
    (re.compile(r'(token["\']?\s*[:=]\s*["\']?)([^"\'\s]+)', re.IGNORECASE), r'\1***REDACTED***'),
    (re.compile(r'(pat["\']?\s*[:=]\s*["\']?)([^"\'\s]+)', re.IGNORECASE), r'\1***REDACTED***'),
    (re.compile(r'(bearer\s+)([a-zA-Z0-9\-._~+/]+=*)', re.IGNORECASE), r'\1***REDACTED***'),
    (re.compile(r'(basic\s+)([a-zA-Z0-9+/]+=*)', re.IGNORECASE), r'\1***REDACTED***'),
    (re.compile(r'(authorization["\']?\s*[:=]\s*["\']?)([^"\'\s]+)', re.IGNORECASE), r'\1***REDACTED***'),
    # SAS signatures on attachment and blob URLs
    (re.compile(r'([?&]sig=)([^&\s"\']+)', re.IGNORECASE), r'\1***REDACTED***'),
]

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_LEVEL_ENV = "ADO_AGENTS_LOG_LEVEL"


def sanitize_log_message(message: str) -> str:
    """
    Sanitize a log message by redacting sensitive information.

    Args:
        message: The log message to sanitize

    Returns:
        Sanitized log message with sensitive data redacted
    """
    if not message:
        return message

    sanitized = message
    for pattern, replacement in SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)

    return sanitized


def safe_log_error(error: Exception, context: str = "") -> str:
    """
    Create a safe error message for logging.

    Args:
        error: The exception
        context: Additional context (e.g., "Authentication failed")

    Returns:
        "<context>: <ErrorType>: <sanitized message>"
    """
    sanitized_error = sanitize_log_message(str(error))
    error_type = type(error).__name__

    if context:
        return f"{context}: {error_type}: {sanitized_error}"
    return f"{error_type}: {sanitized_error}"


class SanitizingFilter(logging.Filter):
    """Logging filter that redacts secrets from the rendered message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        sanitized = sanitize_log_message(message)
        if sanitized != message:
            record.msg = sanitized
            record.args = None
        return True


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Install a sanitizing stderr handler on the package logger.

    stdout carries the MCP stdio transport, so nothing may be logged there.
    Calling this more than once does not add duplicate handlers.

    Args:
        level: Level name; defaults to $ADO_AGENTS_LOG_LEVEL, then INFO

    Returns:
        The configured "ado_agents" logger
    """
    level_name = (level or os.getenv(LOG_LEVEL_ENV) or "INFO").upper()

    package_logger = logging.getLogger("ado_agents")
    package_logger.setLevel(getattr(logging, level_name, logging.INFO))

    if not any(getattr(h, '_ado_agents_handler', False) for h in package_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(SanitizingFilter())
        handler._ado_agents_handler = True
        package_logger.addHandler(handler)

    return package_logger
