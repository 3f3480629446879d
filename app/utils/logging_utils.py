"""
Logging Utilities

This module provides centralized logging configuration for the FastAPI
application. It ensures consistent log formatting with request ID tracing
across classification, resolution and delivery of a single download.
"""
import logging
from typing import Optional


LOGGER_NAME = "media_proxy"


def setup_logger(
    log_level: int = logging.INFO,
    logger_name: str = LOGGER_NAME
) -> logging.Logger:
    """
    Configure the application logger.

    Args:
        log_level: Logging level constant from logging module.
                  Defaults to logging.INFO (20).
        logger_name: Name for the logger instance. Defaults to "media_proxy".

    Returns:
        Configured Logger instance ready for use with get_request_logger().

    Example:
        >>> logger = setup_logger(log_level=logging.DEBUG)
        >>> req_logger = get_request_logger("a1b2c3d4")
        >>> req_logger.info("Resolving instagram post")
        2026-10-18 10:30:45 | INFO | [a1b2c3d4] Resolving instagram post
    """
    log_format = logging.Formatter(
        '%(asctime)s | %(levelname)s | [%(request_id)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_level)
    logger.propagate = False

    # Prevent duplicate handlers if logger already configured
    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(log_format)
        logger.addHandler(console_handler)

    return logger


def get_request_logger(
    request_id: str,
    base_logger: Optional[logging.Logger] = None
) -> logging.LoggerAdapter:
    """
    Create a logger adapter with the request ID for tracing.

    The LoggerAdapter injects the request_id into all log messages, enabling
    end-to-end tracing of one download through the whole pipeline.

    Args:
        request_id: Unique identifier for the request.
        base_logger: Optional base logger to wrap. If None, uses the
                    "media_proxy" logger.

    Returns:
        LoggerAdapter configured to inject request_id into all log messages.
    """
    if base_logger is None:
        base_logger = logging.getLogger(LOGGER_NAME)

    return logging.LoggerAdapter(base_logger, {"request_id": request_id})
