from __future__ import annotations

import logging
import time

from flask import g, request

from ..config import AppSettings
from .filters import Filter

logger = logging.getLogger(__name__)


class AppFilter(Filter):
    """Bind per-request application state: locale, base url, timing."""

    name = "app"

    def __init__(self, settings: AppSettings):
        self.locales = settings.get_list("application.locales", ("en",))
        self.default_locale = self.locales[0] if self.locales else "en"
        self.base_url = settings.get("application.base_url")

    def before(self):
        g.request_started = time.perf_counter()
        g.locale = request.accept_languages.best_match(self.locales) or self.default_locale
        g.base_url = self.base_url or request.host_url.rstrip("/")
        return None

    def after(self, response):
        started = g.get("request_started")
        if started is not None:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.debug("%s %s -> %s in %.1fms", request.method, request.path, response.status_code, elapsed_ms)
        response.headers.setdefault("Content-Language", g.get("locale", self.default_locale))
        return response
