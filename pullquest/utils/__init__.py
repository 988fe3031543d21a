"""Utility modules for the Pull Quest application."""

from pullquest.utils.logging import LogContext, PasswordRedactionFilter, get_logger, mask_email, setup_logging

__all__ = [
    "get_logger",
    "LogContext",
    "mask_email",
    "PasswordRedactionFilter",
    "setup_logging",
]
