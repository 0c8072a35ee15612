"""i18n bundle endpoint.

Synopsis:
Serves ``/js/messages.js``: the message bundle for the request locale as a
script assigning ``window._t``. Bundles are JSON files named
``messages_<lang>.json`` under ``i18n.dir``; they are cached and, in dev
mode, a polling watcher drops the cache when a file changes.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path

from flask import Flask, Response, g, request

from ..config import AppSettings, resolve_mode
from ..utils.json_store import file_signature, read_json_file

logger = logging.getLogger(__name__)

I18N_EXTENSION = "appcore.i18n"
BUNDLE_PATTERN = "messages_*.json"
DEFAULT_POLL_INTERVAL = 2.0


class BundleStore:
    """Load and cache per-language message bundles from one directory."""

    def __init__(self, directory: str | None, fallback_language: str = "en"):
        self.directory = Path(directory) if directory else None
        self.fallback_language = fallback_language
        self._bundles: dict[str, dict[str, str]] = {}
        self._lock = threading.Lock()

    def _load(self, language: str) -> dict[str, str]:
        if self.directory is None:
            return {}
        data = read_json_file(self.directory / f"messages_{language}.json", default={})
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed bundle for %s", language)
            return {}
        return {str(key): str(value) for key, value in data.items()}

    def bundle(self, locale: str | None) -> dict[str, str]:
        language = (locale or self.fallback_language).replace("-", "_").split("_")[0].lower()
        with self._lock:
            cached = self._bundles.get(language)
            if cached is None:
                cached = dict(self._load(self.fallback_language)) if language != self.fallback_language else {}
                cached.update(self._load(language))
                self._bundles[language] = cached
            return cached

    def clear(self) -> None:
        with self._lock:
            self._bundles.clear()

    def signature(self):
        if self.directory is None:
            return ()
        return file_signature(self.directory, BUNDLE_PATTERN)


class BundleWatcher:
    """Poll the bundle directory and clear the store when it changes."""

    def __init__(self, store: BundleStore, interval: float = DEFAULT_POLL_INTERVAL):
        self.store = store
        self.interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._last = store.signature()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def check(self) -> bool:
        current = self.store.signature()
        if current == self._last:
            return False
        self._last = current
        self.store.clear()
        logger.info("i18n bundles changed in %s; cache cleared", self.store.directory)
        return True

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.check()
            except OSError as exc:
                logger.warning("i18n watcher failed to scan %s: %s", self.store.directory, exc)

    def start(self) -> None:
        if self.running or self.store.directory is None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="appcore-i18n-watcher", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval + 1)
            self._thread = None


def register_i18n(app: Flask, settings: AppSettings) -> BundleStore:
    existing = app.extensions.get(I18N_EXTENSION)
    if existing is not None:
        return existing["store"]

    locales = settings.get_list("application.locales", ("en",))
    store = BundleStore(settings.get_path("i18n.dir"), fallback_language=locales[0] if locales else "en")
    watcher = None
    if resolve_mode(settings).name == "dev" and store.directory is not None:
        watcher = BundleWatcher(store, settings.get_int("i18n.poll_interval", 2) or DEFAULT_POLL_INTERVAL)
    app.extensions[I18N_EXTENSION] = {"store": store, "watcher": watcher}

    @app.route("/js/messages.js", endpoint="appcore_i18n_messages")
    def _messages():
        locale = g.get("locale") or request.accept_languages.best or store.fallback_language
        body = "(function(){window._t=" + json.dumps(store.bundle(locale), sort_keys=True) + ";})();"
        return Response(body, mimetype="application/javascript")

    return store


def bundle_watcher(app: Flask) -> BundleWatcher | None:
    state = app.extensions.get(I18N_EXTENSION) or {}
    return state.get("watcher")
