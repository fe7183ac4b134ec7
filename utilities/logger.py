"""
Structured logging setup using structlog.
Provides JSON or console output and an auth event logger.
"""

import logging
import sys
from pathlib import Path
from typing import Optional
import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None,
    debug: bool = False
) -> None:
    """
    Set up structured logging with configurable output formats.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (json or console)
        log_file: Optional log file path
        debug: Add call-site information to every event
    """

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if debug:
        processors.append(structlog.processors.CallsiteParameterAdder())

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(getattr(logging, log_level.upper()))
        file_handler.setFormatter(logging.Formatter('%(message)s'))
        logging.getLogger().addHandler(file_handler)

    logger = structlog.get_logger(__name__)
    logger.info(
        "Logging system initialized",
        level=log_level,
        format=log_format,
        file=str(log_file) if log_file else None,
        debug=debug
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def mask_email(email: str) -> str:
    """Keep the first character and the domain of an email."""
    local, sep, domain = (email or "").partition("@")
    if not sep:
        return (local[:1] + "***") if local else ""
    return f"{local[:1]}***@{domain}"


class AuthLogger:
    """
    Logger for authentication events.

    Emails are masked and tokens or passwords are never logged.
    """

    def __init__(self, name: str = "auth"):
        self.logger = structlog.get_logger(name)
        self.context = {}

    def bind_context(self, **kwargs) -> 'AuthLogger':
        """
        Bind context variables to the logger.

        Args:
            **kwargs: Context variables to bind

        Returns:
            Self for method chaining
        """
        self.context.update(kwargs)
        return self

    def clear_context(self) -> 'AuthLogger':
        """Clear all context variables."""
        self.context.clear()
        return self

    def log_signup(self, email: str, success: bool = True, reason: Optional[str] = None) -> None:
        level = "info" if success else "warning"
        getattr(self.logger, level)(
            "Signup attempt",
            email=mask_email(email),
            success=success,
            reason=reason,
            **self.context
        )

    def log_login(self, email: str, success: bool = True, reason: Optional[str] = None) -> None:
        level = "info" if success else "warning"
        getattr(self.logger, level)(
            "Login attempt",
            email=mask_email(email),
            success=success,
            reason=reason,
            **self.context
        )

    def log_refresh(self, email: Optional[str], success: bool = True, reason: Optional[str] = None) -> None:
        level = "info" if success else "warning"
        getattr(self.logger, level)(
            "Access token refresh",
            email=mask_email(email) if email else None,
            success=success,
            reason=reason,
            **self.context
        )

    def log_token_rejected(self, path: str, reason: str) -> None:
        self.logger.warning(
            "Access token rejected",
            path=path,
            reason=reason,
            **self.context
        )
