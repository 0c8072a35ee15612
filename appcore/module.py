"""Application composition module.

Synopsis:
Assembles one app: composes the persistence unit, starts the ORM, installs
the ordered filter chain, lets installed modules contribute, binds the
standard interceptors and weaves every discovered resource and socket
endpoint. The result is an ``AppContext`` stored on the app.

Glossary:
- Installed module: Object with ``configure(app, context)`` run during assembly.
"""

from __future__ import annotations

import logging
from typing import Iterable, Protocol

from flask import Flask, jsonify

from .config import AppSettings, resolve_mode
from .context import CONTEXT_EXTENSION, AppContext
from .interception import InterceptorRegistry, accepts, annotated_with, any_, returns, subclasses_of
from .meta.scanner import MetaScanner
from .meta.tags import path, provider, socket_endpoint, websocket_security
from .persistence.composer import compose
from .persistence.helpers import DEFAULT_PERSISTENCE_UNIT
from .persistence.scanner import EntityFilters
from .persistence.service import PersistenceService
from .rpc.interceptors import RequestFilter, ResponseInterceptor
from .rpc.models import Request, Response
from .ws.registry import SocketEndpointRegistry
from .ws.security import WebSocketSecurityInterceptor
from .web.pipeline import install_pipeline

logger = logging.getLogger(__name__)


class InstallableModule(Protocol):
    def configure(self, app: Flask, context: AppContext) -> None: ...


class AppModule:
    def __init__(
        self,
        settings: AppSettings,
        unit: str = DEFAULT_PERSISTENCE_UNIT,
        *,
        packages: Iterable[str] = (),
        types: Iterable[type] = (),
        modules: Iterable[InstallableModule] = (),
        entity_packages: Iterable[str] = (),
        excluded_entity_packages: Iterable[str] = (),
    ):
        self.settings = settings
        self.unit = unit
        self.entity_filters = EntityFilters.of(entity_packages, excluded_entity_packages)
        self.scanner = MetaScanner(packages, types)
        self.modules = list(modules)

    def get_modules(self) -> list[InstallableModule]:
        return list(self.modules)

    def configure_interceptors(self, registry: InterceptorRegistry) -> None:
        registry.bind(any_(), returns(subclasses_of(Response)), ResponseInterceptor())
        registry.bind(annotated_with(path), accepts(Request), RequestFilter())
        registry.bind(annotated_with(websocket_security), any_(), WebSocketSecurityInterceptor())

    def after_configure(self, app: Flask, context: AppContext) -> None:
        @app.route("/health", endpoint="appcore_health")
        def _health():
            return jsonify(
                {
                    "status": "ok",
                    "mode": context.mode,
                    "database": context.persistence.available,
                    "resources": len(context.resources),
                }
            )

    def configure(self, app: Flask) -> AppContext:
        config = compose(self.settings, self.unit, autoscan=True)
        persistence = PersistenceService(config, self.settings, entity_filters=self.entity_filters).init_app(app)

        context = AppContext(
            app=app,
            settings=self.settings,
            mode=resolve_mode(self.settings).name,
            persistence_config=config,
            persistence=persistence,
            interceptors=InterceptorRegistry(),
            entity_filters=self.entity_filters,
        )
        app.extensions[CONTEXT_EXTENSION] = context

        context.filter_chain = install_pipeline(app, self.settings, persistence)

        for module in self.get_modules():
            logger.debug("Installing module %s", type(module).__name__)
            module.configure(app, context)

        self.configure_interceptors(context.interceptors)

        resources = self.scanner.find_subtypes_of(object).having(path).having(provider).any().find()
        context.resources = context.interceptors.enhance_all(resources)
        endpoints = self.scanner.find_subtypes_of(object).having(websocket_security).having(socket_endpoint).any().find()
        context.sockets = SocketEndpointRegistry(context.interceptors.enhance_all(endpoints))
        context.interceptors.freeze()

        self.after_configure(app, context)
        logger.info(
            "Configured %d resources, %d socket endpoints, %d filters",
            len(context.resources),
            len(context.sockets),
            len(context.filter_chain),
        )
        return context
