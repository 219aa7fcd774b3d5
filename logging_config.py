from __future__ import annotations

import logging
import re

_LOGGING_CONFIGURED = False
_PASSWORD_RE = re.compile(r"(://[^:/@]+:)([^@]*)(@)")


def configure_logging(level_name: str = "INFO") -> None:
    """Configure process-wide logging once."""

    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    _LOGGING_CONFIGURED = True


def mask_password(url: str) -> str:
    """Hide the password part of a database URL before it is logged."""
    return _PASSWORD_RE.sub(r"\1******\3", url)
