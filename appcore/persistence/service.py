"""ORM initializer.

Synopsis:
Consumes a composed ``PersistenceConfiguration`` and wires Flask-SQLAlchemy,
Flask-Caching, tenant routing, audit stamping and search indexing onto one
Flask app. Hooks named in the configuration are resolved by dotted path, so a
bad override aborts startup instead of failing on the first request.

Glossary:
- Hook: Dotted path to a class the configuration asks the ORM to use.
- Unit of work: Session scope opened per request and released at teardown.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from flask import Flask, current_app, has_app_context
from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from werkzeug.utils import ImportStringError, import_string

from ..config import AppSettings
from ..errors import CompositionError, ConfigurationError, PersistenceUnavailableError
from . import keys
from .cache import DEFAULT_CACHE_REGION_FACTORY
from .properties import PersistenceConfiguration, TenancyMode
from .scanner import EntityFilters

logger = logging.getLogger(__name__)

PERSISTENCE_EXTENSION = "appcore.persistence"
DATASOURCES_CONFIG = "APPCORE_DATASOURCES"
CREATE_DDL_MODES = {"create", "create-drop", "update"}
_SQLITE_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:"}
_INT_ENGINE_OPTIONS = {"pool_size", "max_overflow", "pool_recycle", "pool_timeout"}
_BOOL_ENGINE_OPTIONS = {"pool_pre_ping", "echo", "future"}


def _resolve_hook(config: PersistenceConfiguration, key: str):
    path = config.get(key)
    if not path:
        return None
    try:
        return import_string(path)
    except (ImportStringError, ImportError, AttributeError) as exc:
        raise CompositionError(f"{key}={path!r} cannot be imported: {exc}") from exc


def engine_options_from(config: PersistenceConfiguration, url: str) -> dict[str, Any]:
    """Translate ``sqlalchemy.engine.*`` properties into ``create_engine`` kwargs."""
    options: dict[str, Any] = {}
    for key, raw in config.with_prefix(keys.ENGINE_PREFIX).items():
        name = key[len(keys.ENGINE_PREFIX):]
        if name == "poolclass":
            try:
                options[name] = import_string(raw)
            except (ImportStringError, ImportError, AttributeError) as exc:
                raise CompositionError(f"{key}={raw!r} cannot be imported: {exc}") from exc
        elif name in _INT_ENGINE_OPTIONS:
            try:
                options[name] = int(raw)
            except ValueError as exc:
                raise CompositionError(f"{key} expects an integer, got {raw!r}") from exc
        elif name in _BOOL_ENGINE_OPTIONS:
            options[name] = raw.strip().lower() == "true"
        else:
            options[name] = raw

    if config.is_true(keys.AUTOCOMMIT):
        options["isolation_level"] = "AUTOCOMMIT"

    if url.startswith("sqlite"):
        # SQLite pools do not accept queue sizing
        options.pop("pool_size", None)
        options.pop("max_overflow", None)
        options.pop("pool_timeout", None)
        if options.get("poolclass") is not None and options["poolclass"].__name__ == "QueuePool":
            options.pop("poolclass")
        if url in _SQLITE_MEMORY_URLS:
            options["poolclass"] = StaticPool
            options["connect_args"] = {"check_same_thread": False}
    return options


class UnitOfWork:
    """Request-scoped handle on the ORM session."""

    def __init__(self, service: "PersistenceService"):
        self.service = service
        self.closed = False

    @property
    def session(self):
        return self.service.session

    def rollback(self) -> None:
        if self.service.available:
            self.service.db.session.rollback()

    def end(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.service.available:
            self.service.db.session.remove()


class PersistenceService:
    """Bind a composed configuration to a Flask app."""

    def __init__(
        self,
        config: PersistenceConfiguration,
        settings: AppSettings,
        db=None,
        cache=None,
        entity_filters: EntityFilters | None = None,
    ):
        if db is None or cache is None:
            from ..extensions import cache as default_cache
            from ..extensions import db as default_db

            db = db or default_db
            cache = cache or default_cache
        self.config = config
        self.settings = settings
        self.db = db
        self.cache = cache
        self.entity_filters = entity_filters or EntityFilters()
        self.app: Flask | None = None
        self.url: str | None = None
        self.available = False
        self.started = False
        self.entities: dict[str, type] = {}
        self.search_mapping: dict[str, tuple[str, ...]] = {}
        self.indexing_listener = None
        self.tenant_routing = None
        self._listeners: list[tuple[Any, str, Any]] = []
        self._dialects = None

    # --- hooks ---

    def _instantiate_hooks(self) -> None:
        self.dialect_resolver_class = _resolve_hook(self.config, keys.DIALECT_RESOLVERS)
        self.implicit_naming = _resolve_hook(self.config, keys.IMPLICIT_NAMING_STRATEGY)()
        self.physical_naming = _resolve_hook(self.config, keys.PHYSICAL_NAMING_STRATEGY)()
        self.interceptor = _resolve_hook(self.config, keys.INTERCEPTOR)()
        self.scanner_class = _resolve_hook(self.config, keys.SCANNER)
        self.search_mapping_class = _resolve_hook(self.config, keys.SEARCH_MODEL_MAPPING)
        self.provider_class = _resolve_hook(self.config, keys.MULTI_TENANT_CONNECTION_PROVIDER)
        self.resolver_class = _resolve_hook(self.config, keys.MULTI_TENANT_IDENTIFIER_RESOLVER)
        self._dialects = self.dialect_resolver_class() if self.dialect_resolver_class else None

    # --- connection ---

    def _database_url(self, app: Flask) -> str | None:
        if self.config.uses_datasource:
            name = self.config[keys.DATASOURCE]
            datasources: Mapping[str, str] = app.config.get(DATASOURCES_CONFIG) or {}
            url = datasources.get(name)
            if not url:
                logger.warning("Managed datasource %r is not registered in %s", name, DATASOURCES_CONFIG)
            return url

        url = self.config.get(keys.URL)
        if url:
            return self._resolve_url(
                url, self.config.get(keys.DRIVER), self.config.get(keys.USER), self.config.get(keys.PASSWORD)
            )
        tenant_id = self._fallback_tenant()
        if tenant_id is None:
            return None
        logger.info("No url for the persistence unit; the default bind uses tenant %s", tenant_id)
        prefix = f"db.{tenant_id}."
        return self._resolve_url(
            self.settings.get(prefix + "url"),
            self.settings.get(prefix + "driver"),
            self.settings.get(prefix + "user"),
            self.settings.get(prefix + "password"),
        )

    def _fallback_tenant(self) -> str | None:
        """Tenant whose database backs the default bind when the unit has no url."""
        if self.config.tenancy_mode is not TenancyMode.DATABASE_PER_TENANT or self.provider_class is None:
            return None
        tenant_ids = self.provider_class(self.settings).tenant_ids()
        default_tenant = self.settings.get("tenants.default")
        if default_tenant in tenant_ids:
            return default_tenant
        return tenant_ids[0] if tenant_ids else None

    def _resolve_url(self, url: str, driver, username, password) -> str:
        if self._dialects is None:
            return url
        resolved = self._dialects.resolve(url, driver=driver, username=username, password=password)
        return resolved.render_as_string(hide_password=False)

    # --- lifecycle ---

    def init_app(self, app: Flask) -> "PersistenceService":
        if self.started:
            return self
        self.app = app
        self._instantiate_hooks()

        try:
            self.url = self._database_url(app)
        except ConfigurationError as exc:
            logger.warning("Database connection not configured: %s", exc)
            self.url = None

        if self.url:
            app.config["SQLALCHEMY_DATABASE_URI"] = self.url
            app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options_from(self.config, self.url)
            app.config.setdefault("SQLALCHEMY_TRACK_MODIFICATIONS", False)
            self.db.init_app(app)
            self.available = True
        else:
            logger.warning("No database url for the persistence unit; sessions are unavailable")

        self._init_cache(app)
        app.extensions[PERSISTENCE_EXTENSION] = self

        with app.app_context():
            self.entities = self._scan_entities()
            self._init_tenancy(app)
            self._init_listeners()
            self._run_ddl()

        self.started = True
        logger.info(
            "Persistence started (available=%s, tenancy=%s, cache=%s, search=%s)",
            self.available,
            self.config.tenancy_mode.value,
            self.config.cache_mode.enabled,
            self.config.search_mode.enabled,
        )
        return self

    def _scan_entities(self) -> dict[str, type]:
        if self.scanner_class is None:
            return {}
        return self.scanner_class(self.db.Model.registry, self.entity_filters).find_entities()

    def _init_cache(self, app: Flask) -> None:
        mode = self.config.cache_mode
        cache_config: dict[str, Any] = {
            "CACHE_DEFAULT_TIMEOUT": self.settings.get_int("db.cache.timeout", 300),
        }
        if not mode.enabled:
            cache_config["CACHE_TYPE"] = "NullCache"
        elif mode.region_factory and mode.region_factory != DEFAULT_CACHE_REGION_FACTORY:
            factory = _resolve_hook(self.config, keys.CACHE_REGION_FACTORY)
            cache_config.update(factory(app, self.settings))
        else:
            cache_config["CACHE_TYPE"] = mode.provider or "SimpleCache"
            redis_url = self.settings.get("db.cache.redis_url")
            if redis_url:
                cache_config["CACHE_REDIS_URL"] = redis_url
        self.cache.init_app(app, config=cache_config)
        logger.debug("Cache initialized with %s", cache_config.get("CACHE_TYPE"))

    def _init_tenancy(self, app: Flask) -> None:
        from ..tenants.session import TENANCY_EXTENSION, TenantRouting

        if self.config.tenancy_mode is not TenancyMode.DATABASE_PER_TENANT:
            app.extensions.pop(TENANCY_EXTENSION, None)
            return
        provider = self.provider_class(
            self.settings,
            engine_options=lambda url: engine_options_from(self.config, url),
            dialect_resolver=self._dialects,
        )
        resolver = self.resolver_class(default_tenant=self.settings.get("tenants.default"))
        self.tenant_routing = TenantRouting(provider=provider, resolver=resolver)
        app.extensions[TENANCY_EXTENSION] = self.tenant_routing
        logger.info("Tenant routing installed for %s", ", ".join(provider.tenant_ids()) or "no tenants")

    def _owns_current_app(self) -> bool:
        return has_app_context() and current_app.extensions.get(PERSISTENCE_EXTENSION) is self

    def _listen(self, target, name: str, fn) -> None:
        event.listen(target, name, fn)
        self._listeners.append((target, name, fn))

    def _init_listeners(self) -> None:
        from ..tenants.session import TenantRoutingSession

        interceptor = self.interceptor

        def _audit(session, flush_context, instances):
            if self._owns_current_app():
                interceptor.before_flush(session, flush_context, instances)

        self._listen(TenantRoutingSession, "before_flush", _audit)

        if self.search_mapping_class is not None and self.config.search_mode.enabled:
            from .search import IndexingListener

            self.search_mapping = self.search_mapping_class().build(self.entities)
            self.indexing_listener = IndexingListener(self.search_mapping)
            listener = self.indexing_listener

            def _index(session, flush_context):
                if self._owns_current_app():
                    listener.after_flush(session, flush_context)

            self._listen(TenantRoutingSession, "after_flush", _index)
            logger.info("Search indexing active for %d entities", len(self.search_mapping))

    def _ddl_mode(self) -> str:
        return (self.config.get(keys.DDL_AUTO) or "none").strip().lower()

    def _run_ddl(self) -> None:
        if not self.available or self._ddl_mode() not in CREATE_DDL_MODES:
            return
        logger.info("Creating tables (%s=%s)", keys.DDL_AUTO, self._ddl_mode())
        self.db.create_all()
        for engine in self._tenant_engines():
            self.db.metadata.create_all(bind=engine)

    def _tenant_engines(self) -> list:
        if self.tenant_routing is None:
            return []
        provider = self.tenant_routing.provider
        return [provider.engine_for(tenant_id) for tenant_id in provider.tenant_ids()]

    def stop(self) -> None:
        if not self.started:
            return
        self.started = False
        for target, name, fn in reversed(self._listeners):
            try:
                event.remove(target, name, fn)
            except Exception as exc:
                logger.warning("Failed to remove %s listener: %s", name, exc)
        self._listeners.clear()
        if self.available and self.app is not None:
            with self.app.app_context():
                if self._ddl_mode() == "create-drop":
                    logger.info("Dropping tables (%s=create-drop)", keys.DDL_AUTO)
                    self.db.drop_all()
                    for engine in self._tenant_engines():
                        self.db.metadata.drop_all(bind=engine)
                self.db.session.remove()
                self.db.engine.dispose()
        if self.tenant_routing is not None:
            self.tenant_routing.provider.close_all()
        logger.info("Persistence stopped")

    # --- sessions ---

    @property
    def session(self):
        if not self.available:
            raise PersistenceUnavailableError("No database connection is configured for this application")
        return self.db.session

    def begin_unit_of_work(self) -> UnitOfWork:
        return UnitOfWork(self)

    def entity(self, name: str) -> type | None:
        return self.entities.get(name)


def current_persistence() -> PersistenceService | None:
    if not has_app_context():
        return None
    return current_app.extensions.get(PERSISTENCE_EXTENSION)
