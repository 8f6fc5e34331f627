"""
Logging configuration for the SMS template client and sandbox

Sets up plain-text logging with a rotating file or stdout handler, and
provides key=value event helpers for template requests and signature checks.
"""

import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone


def setup_logging(log_level=None, log_file=None, max_bytes=10*1024*1024, backup_count=5):
    """
    Set up logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (if None, logs to stdout)
        max_bytes: Maximum size of log file before rotation (default 10MB)
        backup_count: Number of backup log files to keep (default 5)
    """

    # Default log level from environment or INFO
    if log_level is None:
        log_level = os.environ.get('LOG_LEVEL', 'INFO')
    log_level = log_level.upper()

    # Default log file from environment
    if log_file is None:
        log_file = os.environ.get('LOG_FILE')

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level))
    root_logger.handlers.clear()

    if log_file:
        handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count
        )
    else:
        handler = logging.StreamHandler(sys.stdout)

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized - Level: {log_level}, Output: {log_file or 'stdout'}")

    return logger


def get_logger(name):
    """
    Get a logger instance for a specific module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def _format_event(log_data):
    return ' '.join([f"{k}={v}" for k, v in log_data.items()])


def log_security_event(event_type, details, client_ip=None, app_id=None):
    """
    Log a signature or credential check failure.

    Args:
        event_type: Type of security event (e.g., 'sig_mismatch', 'unknown_app')
        details: Additional details about the event
        client_ip: Client IP address
        app_id: The sdkappid the request claimed
    """
    logger = logging.getLogger('security')

    log_data = {
        'event_type': event_type,
        'details': details,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }
    if client_ip:
        log_data['client_ip'] = client_ip
    if app_id:
        log_data['app_id'] = app_id

    logger.warning(f"SECURITY: {_format_event(log_data)}")


def log_template_event(event_type, operation, app_id=None, tpl_id=None, success=True, error=None):
    """
    Log the outcome of a template operation.

    Args:
        event_type: Type of event (e.g., 'template_request', 'template_added')
        operation: add, modify, delete or get
        app_id: sdkappid the request was made for
        tpl_id: Template id(s) involved, if any
        success: Whether the operation completed
        error: Error message if applicable
    """
    logger = logging.getLogger('template')

    log_data = {
        'event_type': event_type,
        'operation': operation,
        'success': success,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }
    if app_id:
        log_data['app_id'] = app_id
    if tpl_id is not None:
        log_data['tpl_id'] = tpl_id
    if error:
        log_data['error'] = error

    if success:
        logger.info(f"TEMPLATE: {_format_event(log_data)}")
    else:
        logger.error(f"TEMPLATE: {_format_event(log_data)}")
