from __future__ import annotations

from flask import current_app, request

from ..config import AppSettings
from .filters import Filter

DEFAULT_ALLOW_METHODS = "GET,PUT,POST,DELETE,HEAD,OPTIONS"
DEFAULT_ALLOW_HEADERS = "Origin,Accept,X-Requested-With,Content-Type,Authorization,X-Tenant-ID"
DEFAULT_MAX_AGE = 1728000


class CorsFilter(Filter):
    """Answer CORS preflights and decorate cross-origin responses.

    Inactive unless ``cors.allow_origin`` lists at least one origin (or ``*``).
    """

    name = "cors"

    def __init__(self, settings: AppSettings):
        self.allow_origins = settings.get_list("cors.allow_origin")
        self.allow_credentials = settings.get_bool("cors.allow_credentials", True)
        self.allow_methods = settings.get("cors.allow_methods", DEFAULT_ALLOW_METHODS)
        self.allow_headers = settings.get("cors.allow_headers", DEFAULT_ALLOW_HEADERS)
        self.expose_headers = settings.get("cors.expose_headers")
        self.max_age = settings.get_int("cors.max_age", DEFAULT_MAX_AGE)

    @property
    def enabled(self) -> bool:
        return bool(self.allow_origins)

    def _allowed_origin(self) -> str | None:
        origin = request.headers.get("Origin")
        if not origin or not self.enabled:
            return None
        if "*" in self.allow_origins:
            return origin if self.allow_credentials else "*"
        return origin if origin in self.allow_origins else None

    def _decorate(self, headers, origin: str) -> None:
        headers["Access-Control-Allow-Origin"] = origin
        if origin != "*":
            headers.add("Vary", "Origin")
        if self.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        if self.expose_headers:
            headers["Access-Control-Expose-Headers"] = self.expose_headers

    def before(self):
        if request.method != "OPTIONS" or "Access-Control-Request-Method" not in request.headers:
            return None
        origin = self._allowed_origin()
        if origin is None:
            return None
        response = current_app.make_response(("", 200))
        self._decorate(response.headers, origin)
        response.headers["Access-Control-Allow-Methods"] = self.allow_methods
        response.headers["Access-Control-Allow-Headers"] = self.allow_headers
        response.headers["Access-Control-Max-Age"] = str(self.max_age)
        return response

    def after(self, response):
        origin = self._allowed_origin()
        if origin is not None and "Access-Control-Allow-Origin" not in response.headers:
            self._decorate(response.headers, origin)
        return response
