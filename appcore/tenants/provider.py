from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Callable, Mapping

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from ..config import AppSettings
from ..errors import TenantResolutionError
from ..persistence.dialects import CustomDialectResolver

logger = logging.getLogger(__name__)

_NON_TENANT_NAMESPACES = {"cache"}


class TenantConnectionProvider:
    """Hand out one engine per tenant, built from ``db.<tenant>.*`` settings."""

    def __init__(
        self,
        settings: AppSettings,
        engine_options: Callable[[str], Mapping[str, Any]] | None = None,
        dialect_resolver: CustomDialectResolver | None = None,
    ):
        self.settings = settings
        self._engine_options = engine_options or (lambda _url: {})
        self._dialects = dialect_resolver or CustomDialectResolver()
        self._engines: dict[str, Engine] = {}
        self._lock = Lock()

    def tenant_ids(self) -> list[str]:
        found: list[str] = []
        for key in self.settings.keys_with_prefix("db."):
            parts = key.split(".")
            if len(parts) == 3 and parts[2] == "url" and parts[1] not in _NON_TENANT_NAMESPACES:
                if self.settings.get(key) and parts[1] not in found:
                    found.append(parts[1])
        return found

    def has_tenant(self, tenant_id: str | None) -> bool:
        return bool(tenant_id) and self.settings.get(f"db.{tenant_id}.url") is not None

    def _build(self, tenant_id: str) -> Engine:
        url = self.settings.get(f"db.{tenant_id}.url")
        if not url:
            raise TenantResolutionError(f"Unknown tenant: {tenant_id!r}")
        resolved = self._dialects.resolve(
            url,
            driver=self.settings.get(f"db.{tenant_id}.driver"),
            username=self.settings.get(f"db.{tenant_id}.user"),
            password=self.settings.get(f"db.{tenant_id}.password"),
        )
        options = dict(self._engine_options(resolved.render_as_string(hide_password=False)))
        logger.info("Opening connection pool for tenant %s (%s)", tenant_id, resolved.get_backend_name())
        return create_engine(resolved, **options)

    def engine_for(self, tenant_id: str) -> Engine:
        engine = self._engines.get(tenant_id)
        if engine is not None:
            return engine
        with self._lock:
            engine = self._engines.get(tenant_id)
            if engine is None:
                engine = self._build(tenant_id)
                self._engines[tenant_id] = engine
            return engine

    def close_all(self) -> None:
        with self._lock:
            engines, self._engines = self._engines, {}
        for tenant_id, engine in engines.items():
            try:
                engine.dispose()
            except Exception as exc:
                logger.warning("Failed to dispose engine for tenant %s: %s", tenant_id, exc)
