from __future__ import annotations

from flask import g, has_app_context

CURRENT_TENANT_ATTR = "tenant_id"


class TenantResolver:
    """Resolve the tenant identifier bound to the current request context."""

    def __init__(self, default_tenant: str | None = None):
        self.default_tenant = default_tenant

    @staticmethod
    def set_current(tenant_id: str | None) -> None:
        setattr(g, CURRENT_TENANT_ATTR, tenant_id)

    @staticmethod
    def current() -> str | None:
        if not has_app_context():
            return None
        return getattr(g, CURRENT_TENANT_ATTR, None)

    def resolve_current_tenant_identifier(self) -> str | None:
        return self.current() or self.default_tenant

    def validate_existing_current_sessions(self) -> bool:
        return True
