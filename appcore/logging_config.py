from __future__ import annotations

import logging
import re
from typing import Iterable

from flask import Flask

DEV_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s"
PROD_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
NOISY_LOGGERS = ("werkzeug", "sqlalchemy.engine", "sqlalchemy.pool", "appcore.web.app_filter")
SECRET_VALUES_CONFIG = "APPCORE_SECRET_VALUES"

_REDACTIONS = (
    (re.compile(r"[A-Za-z0-9_.+-]+@[A-Za-z0-9-]+\.[A-Za-z0-9-.]+"), "[REDACTED_EMAIL]"),
    (
        re.compile(r"(token|api[_-]?key|secret|password|passwd|authorization)\s*[:=]\s*([^\s,;]+)", re.IGNORECASE),
        r"\1=[REDACTED]",
    ),
    (re.compile(r"Bearer\s+[A-Za-z0-9\-_.=:+/]+", re.IGNORECASE), "Bearer [REDACTED]"),
    # user:password@host in database urls
    (re.compile(r"(://[^:/@\s]+):([^@\s]+)@"), r"\1:[REDACTED]@"),
)


class PiiRedactionFilter(logging.Filter):
    """Scrub emails, credentials and known secret values from formatted messages."""

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        self.secrets = tuple(sorted({value for value in secrets if value and len(value) >= 4}, key=len, reverse=True))

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except Exception:  # pragma: no cover
            return True
        for secret in self.secrets:
            message = message.replace(secret, "[REDACTED]")
        for pattern, replacement in _REDACTIONS:
            message = pattern.sub(replacement, message)
        record.msg = message
        record.args = None
        return True


def configure_logging(app: Flask) -> None:
    level = _coerce_level(app.config.get("LOG_LEVEL", "DEBUG" if app.debug else "INFO"))
    for logger in (logging.getLogger(), logging.getLogger("appcore"), app.logger):
        logger.setLevel(level)
    if level > logging.DEBUG:
        for noisy in NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)

    prod = app.config.get("APPCORE_MODE") == "prod" and not app.debug
    formatter = logging.Formatter(PROD_FORMAT if prod else DEV_FORMAT)
    redaction = None
    if app.config.get("LOG_REDACT_PII", True):
        redaction = PiiRedactionFilter(app.config.get(SECRET_VALUES_CONFIG, ()))
    for handler in (*logging.getLogger().handlers, *app.logger.handlers):
        handler.setFormatter(formatter)
        if redaction is not None:
            _replace_redaction(handler, redaction)


def _replace_redaction(handler: logging.Handler, redaction: PiiRedactionFilter) -> None:
    # one redaction filter per handler; the newest app's secrets win
    for existing in [f for f in handler.filters if isinstance(f, PiiRedactionFilter)]:
        handler.removeFilter(existing)
    handler.addFilter(redaction)


def _coerce_level(raw_level) -> int:
    if isinstance(raw_level, int):
        return raw_level
    if isinstance(raw_level, str):
        return getattr(logging, raw_level.strip().upper(), logging.INFO)
    return logging.INFO
