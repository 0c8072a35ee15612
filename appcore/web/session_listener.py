from __future__ import annotations

import logging
import threading
from datetime import timedelta

from flask import Flask, session
from flask_login import user_logged_in, user_logged_out

from ..config import AppSettings

logger = logging.getLogger(__name__)

SESSION_EXTENSION = "appcore.sessions"
DEFAULT_SESSION_TIMEOUT_MINUTES = 60


class SessionListener:
    """Track login sessions for one app and apply its session lifetime."""

    def __init__(self, app: Flask, timeout_minutes: int):
        self.app = app
        self.timeout = timedelta(minutes=timeout_minutes)
        self._active = 0
        self._lock = threading.Lock()

    @property
    def active_sessions(self) -> int:
        return self._active

    def session_created(self, sender, user, **_extra) -> None:
        if sender is not self.app:
            return
        session.permanent = True
        with self._lock:
            self._active += 1
        logger.debug("Session opened for user %s (%d active)", user.get_id(), self._active)

    def session_destroyed(self, sender, user, **_extra) -> None:
        if sender is not self.app:
            return
        with self._lock:
            self._active = max(0, self._active - 1)
        logger.debug("Session closed for user %s (%d active)", getattr(user, "get_id", lambda: None)(), self._active)

    def connect(self) -> None:
        user_logged_in.connect(self.session_created)
        user_logged_out.connect(self.session_destroyed)

    def disconnect(self) -> None:
        user_logged_in.disconnect(self.session_created)
        user_logged_out.disconnect(self.session_destroyed)


def register_session_listener(app: Flask, settings: AppSettings) -> SessionListener:
    """Attach the listener once per app; repeated calls return the first one."""
    existing = app.extensions.get(SESSION_EXTENSION)
    if existing is not None:
        return existing
    timeout = settings.get_int("session.timeout", DEFAULT_SESSION_TIMEOUT_MINUTES)
    listener = SessionListener(app, timeout)
    app.permanent_session_lifetime = listener.timeout
    listener.connect()
    app.extensions[SESSION_EXTENSION] = listener
    return listener


def apply_cookie_policy(app: Flask, settings: AppSettings) -> None:
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SECURE"] = settings.get_bool("session.cookie.secure", False)
    app.config["SESSION_COOKIE_SAMESITE"] = settings.get("session.cookie.samesite", "Lax")
    app.config["REMEMBER_COOKIE_HTTPONLY"] = True
    app.config["REMEMBER_COOKIE_SECURE"] = app.config["SESSION_COOKIE_SECURE"]
