from __future__ import annotations

import logging

from flask import g

from .filters import Filter

logger = logging.getLogger(__name__)


class PersistenceSessionFilter(Filter):
    """Open a unit of work per request and always release it afterwards."""

    name = "persistence-session"

    def __init__(self, persistence):
        self.persistence = persistence

    def before(self):
        g.unit_of_work = self.persistence.begin_unit_of_work()
        return None

    def teardown(self, exc):
        unit = g.pop("unit_of_work", None)
        if unit is None:
            return
        try:
            if exc is not None:
                unit.rollback()
        except Exception as rollback_exc:
            logger.warning("Rollback after failed request did not complete: %s", rollback_exc)
        finally:
            unit.end()
