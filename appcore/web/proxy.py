from __future__ import annotations

import logging

from flask import Flask, g, request
from werkzeug.middleware.proxy_fix import ProxyFix

from ..config import AppSettings
from .filters import Filter

logger = logging.getLogger(__name__)

_PROXY_FIX_MARKER = "_appcore_proxyfix"


class ProxyFilter(Filter):
    """Honor X-Forwarded-* headers set by a trusted reverse proxy."""

    name = "proxy"

    def __init__(self, settings: AppSettings):
        self.enabled = settings.get_bool("proxy.enabled", False)
        self.proxy_fix_kwargs = {
            "x_for": settings.get_int("proxy.x_for", 1),
            "x_proto": settings.get_int("proxy.x_proto", 1),
            "x_host": settings.get_int("proxy.x_host", 1),
            "x_port": settings.get_int("proxy.x_port", 1),
            "x_prefix": settings.get_int("proxy.x_prefix", 0),
        }

    def install(self, app: Flask) -> None:
        if not self.enabled or getattr(app.wsgi_app, _PROXY_FIX_MARKER, False):
            return
        wrapped = ProxyFix(app.wsgi_app, **self.proxy_fix_kwargs)
        setattr(wrapped, _PROXY_FIX_MARKER, True)
        app.wsgi_app = wrapped
        logger.info("Trusting proxy headers: %s", self.proxy_fix_kwargs)

    def before(self):
        g.client_addr = request.remote_addr
        g.client_scheme = request.scheme
        return None
