from __future__ import annotations

from .filters import Filter

STATIC_URL_PATTERNS = ("/dist/*", "/lib/*", "/img/*", "/ico/*", "/css/*")


class NoCacheFilter(Filter):
    """Force revalidation of script and static asset responses."""

    name = "no-cache"

    def after(self, response):
        response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
        response.headers["Pragma"] = "no-cache"
        response.headers["Expires"] = "0"
        return response
