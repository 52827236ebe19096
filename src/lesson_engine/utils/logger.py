"""
Logging utilities with security features.

This module provides logging setup with:
- Configurable log levels and output destinations
- Log rotation for file handlers
- Masking of e-mail addresses and API tokens in messages
"""

import logging
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union


_EMAIL_PATTERN = re.compile(r'[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}')
_TOKEN_PATTERN = re.compile(r'(bearer|token|api[_-]?key)(["\']?\s*[:= ]\s*["\']?)([^"\'\s,]+)', re.IGNORECASE)


def mask_email(email: str) -> str:
    """
    Mask email address for safe logging.

    Examples:
        >>> mask_email("user@example.com")
        'u***@example.com'
        >>> mask_email("invalid")
        '***'
    """
    if not email or "@" not in email:
        return "***"

    local, domain = email.split("@", 1)
    masked_local = local[0] + "***" if len(local) > 0 else "***"
    return f"{masked_local}@{domain}"


class SensitiveDataFilter(logging.Filter):
    """
    Logging filter that masks e-mail addresses and tokens.

    Student and teacher records carry e-mail addresses, and store
    errors may echo authorization headers.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        message = _EMAIL_PATTERN.sub(lambda match: mask_email(match.group(0)), message)
        message = _TOKEN_PATTERN.sub(r'\1\2********', message)
        record.msg = message
        record.args = None
        return True


def setup_logger(
    name: str = "lesson_engine",
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up and configure a logger instance.

    Args:
        name: Logger name (default: "lesson_engine")
        level: Logging level, as a number or a name such as "DEBUG"
        log_file: Optional path to log file for file output

    Returns:
        Configured logger instance

    Examples:
        >>> from lesson_engine.utils.config import config
        >>> logger = setup_logger(level=config.log_level, log_file=config.log_file)
        >>> logger.info("Scheduling service started")
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    logger.setLevel(level)

    formatter = logging.Formatter(
        fmt='%(asctime)s [%(levelname)s] %(name)s:%(funcName)s:%(lineno)d %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    sensitive_filter = SensitiveDataFilter()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.addFilter(sensitive_filter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        file_handler.addFilter(sensitive_filter)
        logger.addHandler(file_handler)

    return logger
