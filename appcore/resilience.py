"""Global resilience and error-handler registration.

Synopsis:
Registers teardown and error handlers for database rollback safety and a
JSON 503 fallback when no database connection can be opened.

Glossary:
- Resilience handler: Global request teardown/error behavior for known failures.
"""

from __future__ import annotations

import logging

from flask import jsonify
from sqlalchemy.exc import DBAPIError, OperationalError

from .errors import PersistenceUnavailableError
from .extensions import db

logger = logging.getLogger(__name__)

_UNAVAILABLE_MESSAGE = "Service temporarily unavailable. Please try again shortly."


def register_resilience_handlers(app) -> None:
    """Install global DB rollback and maintenance handlers."""

    @app.teardown_appcontext
    def _rollback_on_error(exc):
        if exc is None:
            return
        try:
            db.session.rollback()
        except Exception as rollback_exc:
            logger.debug("Rollback during teardown failed: %s", rollback_exc)

    @app.errorhandler(OperationalError)
    @app.errorhandler(DBAPIError)
    @app.errorhandler(PersistenceUnavailableError)
    def _db_error_handler(error):
        try:
            db.session.rollback()
        except Exception as rollback_exc:
            logger.debug("Rollback after database error failed: %s", rollback_exc)
        logger.warning("Database unavailable: %s", error.__class__.__name__)
        return jsonify({"error": "service_unavailable", "message": _UNAVAILABLE_MESSAGE}), 503
