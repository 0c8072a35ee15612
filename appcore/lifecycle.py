from __future__ import annotations

import logging

from flask import Flask

from .context import CONTEXT_EXTENSION, AppContext
from .dispatch import DispatchDeployment
from .logging_config import configure_logging
from .module import AppModule
from .web.i18n import bundle_watcher
from .web.session_listener import SESSION_EXTENSION, apply_cookie_policy

logger = logging.getLogger(__name__)

LIFECYCLE_EXTENSION = "appcore.lifecycle"
DEPLOYMENT_EXTENSION = "appcore.dispatch"


class AppLifecycle:
    """Start and stop one app's composed services, each exactly once."""

    def __init__(self, app: Flask, module: AppModule):
        self.app = app
        self.module = module
        self.context: AppContext | None = None
        self.started = False
        self.stopped = False

    # --- start ---

    def before_start(self) -> None:
        configure_logging(self.app)

    def after_start(self) -> None:
        apply_cookie_policy(self.app, self.module.settings)
        self._configure_dispatch()
        watcher = bundle_watcher(self.app)
        if watcher is not None:
            watcher.start()

    def _configure_dispatch(self) -> None:
        deployment = DispatchDeployment(self.app, self.context.resources, self.context.dependencies())
        self.context.deployment = deployment.start()
        self.app.extensions[DEPLOYMENT_EXTENSION] = deployment

    def on_start(self) -> AppContext:
        if self.started:
            return self.context
        self.started = True
        self.before_start()
        self.context = self.module.configure(self.app)
        self.after_start()
        self.app.extensions[LIFECYCLE_EXTENSION] = self
        logger.info("Application started in %s mode", self.context.mode)
        return self.context

    # --- stop ---

    def _attempt(self, label: str, step) -> None:
        try:
            step()
        except Exception as exc:
            logger.warning("Shutdown step %s failed: %s", label, exc)

    def before_stop(self) -> None:
        watcher = bundle_watcher(self.app)
        if watcher is not None:
            self._attempt("i18n watcher", watcher.stop)
        deployment = self.app.extensions.pop(DEPLOYMENT_EXTENSION, None)
        if deployment is not None:
            self._attempt("dispatch", deployment.stop)

    def after_stop(self) -> None:
        listener = self.app.extensions.pop(SESSION_EXTENSION, None)
        if listener is not None:
            self._attempt("session listener", listener.disconnect)
        self.app.extensions.pop(CONTEXT_EXTENSION, None)

    def on_stop(self) -> None:
        if not self.started or self.stopped:
            return
        self.stopped = True
        self.before_stop()
        if self.context is not None:
            self._attempt("persistence", self.context.persistence.stop)
        self.after_stop()
        logger.info("Application stopped")


def lifecycle_for(app: Flask) -> AppLifecycle | None:
    return app.extensions.get(LIFECYCLE_EXTENSION)
