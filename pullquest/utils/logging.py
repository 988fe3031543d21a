"""Logging configuration for the Pull Quest login app.

Login logs carry user identity, so two rules apply everywhere: passwords
never reach a handler, and email addresses are masked down to their first
character and domain.
"""

import logging
import re
import sys
from typing import Any, Literal

from pullquest.config import get_settings

_PASSWORD_RE = re.compile(r"""(["']?password["']?\s*[:=]\s*)("[^"]*"|'[^']*'|[^\s,}]+)""", re.IGNORECASE)


def mask_email(email: str) -> str:
    """``octo@example.com`` -> ``o***@example.com``."""
    local, sep, domain = email.partition("@")
    if not sep:
        return "***"
    return f"{local[:1]}***@{domain}"


class PasswordRedactionFilter(logging.Filter):
    """Replace password values in formatted messages with ``***``."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _PASSWORD_RE.sub(r"\1***", message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] | None = None
) -> None:
    """Configure logging for the application.

    Args:
        level: Override log level (default: INFO for production, DEBUG otherwise)
    """
    settings = get_settings()

    if level is None:
        level = "INFO" if settings.is_production else "DEBUG"

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(PasswordRedactionFilter())
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[handler],
    )

    # httpx logs every request URL at INFO, including the OAuth callback
    for noisy in ("httpx", "httpcore", "uvicorn.access", "watchfiles"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LogContext:
    """Prefix messages with ``[key=value]`` pairs for one login attempt.

    ``email`` values are masked; ``password`` is refused outright.
    """

    def __init__(self, logger: logging.Logger, **context: Any) -> None:
        if "password" in context:
            raise ValueError("Passwords must not be logged")
        self.logger = logger
        self.context = {k: v for k, v in context.items() if v is not None}
        self.prefix = " ".join(f"[{k}={self._render(k, v)}]" for k, v in self.context.items())

    @staticmethod
    def _render(key: str, value: Any) -> str:
        if key == "email":
            return mask_email(str(value))
        return str(value)

    def bind(self, **context: Any) -> "LogContext":
        """A new context with extra pairs appended."""
        return LogContext(self.logger, **{**self.context, **context})

    def _log(self, level: int, msg: str, *args, **kwargs) -> None:
        self.logger.log(level, f"{self.prefix} {msg}" if self.prefix else msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs) -> None:
        self._log(logging.ERROR, msg, *args, **kwargs)
