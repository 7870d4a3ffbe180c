# # Copyright (c) 2024 LDAP Rebind
# # SPDX-License-Identifier: MIT
# #
# # LDAP Rebind
# # Re-authenticates LDAP connections while chasing referrals

"""Logging configuration and utilities for LDAP Rebind."""

import logging
import sys

from ..config.models import LoggingConfig


def setup_logging(config: LoggingConfig) -> None:
    """
    Setup logging configuration.

    Args:
        config: Logging configuration
    """
    logger = logging.getLogger("ldap-rebind")
    logger.setLevel(getattr(logging, config.level))

    # Clear any existing handlers
    logger.handlers.clear()

    formatter = logging.Formatter(config.format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(getattr(logging, config.level))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if config.file:
        try:
            file_handler = logging.FileHandler(config.file, encoding="utf-8")
            file_handler.setLevel(getattr(logging, config.level))
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
            logger.info(f"Logging to file: {config.file}")
        except OSError as e:
            logger.warning(f"Failed to setup file logging: {e}")

    logger.info(f"Logging initialized at level: {config.level}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return logging.getLogger(f"ldap-rebind.{name}")


def log_rebind_operation(
    operation: str, dn: str | None, success: bool, details: str | None = None
) -> None:
    """
    Log a rebind operation for audit purposes.

    Passwords never reach this function; only the bind DN is recorded.

    Args:
        operation: Operation name (e.g., 'supply', 'bind')
        dn: Bind DN involved, or None for anonymous
        success: Whether operation succeeded
        details: Additional details or error message
    """
    logger = get_logger("audit")

    status = "SUCCESS" if success else "FAILURE"
    log_msg = f"REBIND {operation.upper()}: {status} - DN: {dn or '<anonymous>'}"

    if details:
        log_msg += f" - Details: {details}"

    if success:
        logger.info(log_msg)
    else:
        logger.warning(log_msg)
