from __future__ import annotations

import logging
from fnmatch import fnmatchcase
from typing import Callable

from flask import Flask, current_app, jsonify, redirect, request, url_for
from flask_login import LoginManager, current_user
from werkzeug.routing import BuildError

from ..config import AppSettings
from ..utils.http import wants_json
from .filters import Filter

logger = logging.getLogger(__name__)

DEFAULT_PUBLIC_PATHS = ("/js/*", "/static/*", "/health", "/auth/*", "/favicon.ico")


def configure_login_manager(
    app: Flask,
    user_loader: Callable[[str], object] | None = None,
    login_view: str | None = None,
) -> LoginManager:
    """Attach Flask-Login with an externally supplied user loader."""
    login_manager = LoginManager()
    login_manager.login_view = login_view
    login_manager.init_app(app)

    @login_manager.user_loader
    def _load_user(user_id: str):
        if user_loader is None:
            return None
        try:
            return user_loader(user_id)
        except Exception as exc:
            logger.warning("User loader failed for %s: %s", user_id, exc)
            return None

    @login_manager.unauthorized_handler
    def _unauthorized():
        return _login_required_response()

    return login_manager


def _login_required_response():
    login_view = getattr(getattr(current_app, "login_manager", None), "login_view", None)
    if wants_json() or not login_view:
        return jsonify({"error": "Authentication required"}), 401
    try:
        return redirect(url_for(login_view, next=request.url))
    except BuildError:
        return jsonify({"error": "Authentication required"}), 401


class AuthenticationFilter(Filter):
    """Reject unauthenticated requests to anything but public paths."""

    name = "authentication"

    def __init__(self, settings: AppSettings):
        self.public_paths = tuple(DEFAULT_PUBLIC_PATHS) + tuple(settings.get_list("auth.public_paths"))
        self.disabled = settings.get_bool("auth.disabled", False)

    def is_public(self, path: str) -> bool:
        return any(fnmatchcase(path, pattern) for pattern in self.public_paths)

    def before(self):
        if self.disabled or request.method == "OPTIONS" or self.is_public(request.path):
            return None
        if current_user.is_authenticated:
            return None
        logger.debug(
            "Unauthenticated access attempt: endpoint=%s, path=%s, method=%s",
            request.endpoint,
            request.path,
            request.method,
        )
        return _login_required_response()
