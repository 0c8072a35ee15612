"""Persistence configuration composer.

Synopsis:
Turns application settings into the ordered property bag consumed by the ORM
initializer: fixed defaults first, then ``sqlalchemy.*`` pass-through, then the
cache, tenancy and search selectors, then best-effort connection properties.

Glossary:
- Persistence unit: Named connection-plus-mapping context (``db.<unit>.*``).
- Managed datasource: Connection owned by the host and referenced by name only.
"""

from __future__ import annotations

import logging

from ..config import AppSettings
from . import keys
from .audit import AuditInterceptor
from .cache import apply_cache
from .dialects import CustomDialectResolver
from .helpers import (
    DEFAULT_PERSISTENCE_UNIT,
    datasource_name,
    is_datasource_used,
    normalize_unit_name,
    qualified_name,
)
from .naming import ImplicitNamingStrategy, PhysicalNamingStrategy
from .properties import PersistenceConfiguration
from .scanner import EntityScanner
from .search import apply_search
from .tenancy import apply_tenancy

logger = logging.getLogger(__name__)

MAX_FETCH_DEPTH = 3

# db.<unit>.<facet> -> property
CONNECTION_FACETS = {
    "ddl": keys.DDL_AUTO,
    "driver": keys.DRIVER,
    "url": keys.URL,
    "user": keys.USER,
    "password": keys.PASSWORD,
}

DEFAULT_POOL = {
    keys.POOL_CLASS: "sqlalchemy.pool.QueuePool",
    keys.POOL_SIZE: "5",
    keys.POOL_MAX_OVERFLOW: "15",
    keys.POOL_RECYCLE: "300",
    keys.POOL_PRE_PING: "true",
}


class PersistenceComposer:
    """Compose the persistence configuration for one persistence unit."""

    def __init__(
        self,
        settings: AppSettings,
        unit: str = DEFAULT_PERSISTENCE_UNIT,
        *,
        datasource_managed: bool | None = None,
        autoscan: bool = True,
    ):
        self.settings = settings
        self.unit_name = unit
        self.unit = normalize_unit_name(unit)
        if datasource_managed is None:
            datasource_managed = is_datasource_used(settings, self.unit)
        self.datasource_managed = datasource_managed
        self.autoscan = autoscan

    def compose(self) -> PersistenceConfiguration:
        logger.debug("Configuring persistence unit %s (db.%s.*)", self.unit_name, self.unit)
        config = PersistenceConfiguration()

        if self.autoscan:
            config[keys.SCANNER] = qualified_name(EntityScanner)
        config[keys.INTERCEPTOR] = qualified_name(AuditInterceptor)
        config[keys.IMPLICIT_NAMING_STRATEGY] = qualified_name(ImplicitNamingStrategy)
        config[keys.PHYSICAL_NAMING_STRATEGY] = qualified_name(PhysicalNamingStrategy)
        config[keys.DIALECT_RESOLVERS] = qualified_name(CustomDialectResolver)
        config[keys.AUTOCOMMIT] = "false"
        config[keys.MAX_FETCH_DEPTH] = MAX_FETCH_DEPTH

        if not self.datasource_managed:
            for key, value in DEFAULT_POOL.items():
                config[key] = value

        self._apply_orm_settings(config)

        apply_cache(self.settings, config)
        apply_tenancy(self.settings, config)
        apply_search(self.settings, config)

        try:
            self._configure_connection(config)
        except Exception as exc:
            # a broken connection must surface when a session opens, not here
            logger.warning("Connection settings for unit %s not applied: %s", self.unit, exc)

        return config.validate()

    def _apply_orm_settings(self, config: PersistenceConfiguration) -> None:
        for key in self.settings.keys_with_prefix(keys.ORM_NAMESPACE):
            value = self.settings.get(key)
            if value is not None:
                config[key] = value

    def _configure_connection(self, config: PersistenceConfiguration) -> None:
        if self.datasource_managed:
            for key in keys.CONNECTION_KEYS:
                config.remove(key)
            config[keys.DATASOURCE] = datasource_name(self.settings, self.unit)
            return

        for facet, prop in CONNECTION_FACETS.items():
            value = self.settings.get(f"db.{self.unit}.{facet}")
            if value:
                config[prop] = value.strip()


def compose(
    settings: AppSettings,
    unit: str = DEFAULT_PERSISTENCE_UNIT,
    datasource_managed: bool | None = None,
    *,
    autoscan: bool = True,
) -> PersistenceConfiguration:
    return PersistenceComposer(
        settings, unit, datasource_managed=datasource_managed, autoscan=autoscan
    ).compose()
