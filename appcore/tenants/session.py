from __future__ import annotations

from dataclasses import dataclass

from flask import current_app, has_app_context
from flask_sqlalchemy.session import Session

from .provider import TenantConnectionProvider
from .resolver import TenantResolver

TENANCY_EXTENSION = "appcore.tenancy"


@dataclass(frozen=True)
class TenantRouting:
    provider: TenantConnectionProvider
    resolver: TenantResolver


def current_routing() -> TenantRouting | None:
    if not has_app_context():
        return None
    return current_app.extensions.get(TENANCY_EXTENSION)


class TenantRoutingSession(Session):
    """Session that binds to the current tenant's engine when routing is installed."""

    def get_bind(self, mapper=None, clause=None, bind=None, **kwargs):
        if bind is None:
            routing = current_routing()
            if routing is not None:
                tenant_id = routing.resolver.resolve_current_tenant_identifier()
                if tenant_id:
                    return routing.provider.engine_for(tenant_id)
        return super().get_bind(mapper=mapper, clause=clause, bind=bind, **kwargs)
