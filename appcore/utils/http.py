from __future__ import annotations

from typing import Optional

from flask import Request, has_request_context, request

__all__ = ["wants_json", "JSON_MIMETYPE"]

JSON_MIMETYPE = "application/json"
HTML_MIMETYPE = "text/html"
JSON_PATH_PREFIXES = ("/api/", "/ws/", "/js/")


def wants_json(req: Optional[Request] = None) -> bool:
    """
    Determine whether the active request favors a JSON response.

    - Dispatch, socket and script routes always answer with JSON.
    - Otherwise compare the accepted mimetypes; outside a request context
      (CLI commands calling helpers directly) the answer is ``False``.
    """
    req = req or (request if has_request_context() else None)
    if req is None:
        return False

    if req.path.startswith(JSON_PATH_PREFIXES) or req.is_json:
        return True

    accept = getattr(req, "accept_mimetypes", None)
    if not accept:
        return False

    if accept.best == JSON_MIMETYPE:
        return True

    return accept[JSON_MIMETYPE] > accept[HTML_MIMETYPE]
