from __future__ import annotations

import logging
from datetime import datetime, timezone

from flask import has_request_context
from flask_login import current_user

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _current_user_id():
    if not has_request_context():
        return None
    try:
        if current_user.is_authenticated:
            return current_user.get_id()
    except Exception as exc:
        logger.debug("Unable to read current user for audit stamps: %s", exc)
    return None


class AuditInterceptor:
    """Stamp creation and modification columns on flushed entities."""

    CREATED_ON = "created_on"
    UPDATED_ON = "updated_on"
    CREATED_BY = "created_by"
    UPDATED_BY = "updated_by"

    def __init__(self, clock=_now, user_provider=_current_user_id):
        self._clock = clock
        self._user_provider = user_provider

    def before_flush(self, session, _flush_context, _instances) -> None:
        now = self._clock()
        user_id = self._user_provider()
        for instance in session.new:
            if hasattr(instance, self.CREATED_ON) and getattr(instance, self.CREATED_ON) is None:
                setattr(instance, self.CREATED_ON, now)
            if user_id is not None and hasattr(instance, self.CREATED_BY):
                setattr(instance, self.CREATED_BY, user_id)
        for instance in session.dirty:
            if not session.is_modified(instance, include_collections=False):
                continue
            if hasattr(instance, self.UPDATED_ON):
                setattr(instance, self.UPDATED_ON, now)
            if user_id is not None and hasattr(instance, self.UPDATED_BY):
                setattr(instance, self.UPDATED_BY, user_id)
