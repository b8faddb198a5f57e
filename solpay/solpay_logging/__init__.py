"""
Structured logging for solpay.

JSON logs with timestamp, event_type and wallet context. Use get_logger() in
every module.
"""

from solpay.solpay_logging.logger import configure_structlog, get_logger

__all__ = ["configure_structlog", "get_logger"]
