"""Centralized logging setup for the document extraction service.

Configures a single stdout handler for the whole process and masks
provider credentials that would otherwise leak through request URLs
logged by the HTTP client.
"""

import logging
import re
import sys

_CREDENTIAL_PATTERNS = [
    re.compile(r"([?&]key=)[^&\s\"']+"),
    re.compile(r"(Bearer\s+)[A-Za-z0-9._\-]+"),
]

_MASK = "***"


class CredentialFilter(logging.Filter):
    """Mask API keys and bearer tokens in formatted log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = redact(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def redact(text: str) -> str:
    """Replace credential values in ``text`` with a fixed mask.

    Args:
        text: Arbitrary text, typically a log message or URL.

    Returns:
        The text with query-string keys and bearer tokens masked.
    """
    for pattern in _CREDENTIAL_PATTERNS:
        text = pattern.sub(lambda m: m.group(1) + _MASK, text)
    return text


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with a standard format.

    Args:
        level: Logging level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()

    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    handler.addFilter(CredentialFilter())
    root.addHandler(handler)
    root.setLevel(numeric_level)

    # httpx logs every request URL at INFO
    logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Get a named logger instance.

    Args:
        name: Logger name, typically ``__name__`` of the calling module.

    Returns:
        Configured logger instance.
    """
    return logging.getLogger(name)
