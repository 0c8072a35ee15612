"""Tenant resolution around the persistence session.

Synopsis:
The pre-session filter picks the tenant before a unit of work opens, so the
routing session binds to the right database. The post-session filter runs
after authentication and checks that the signed-in user belongs to it.

Glossary:
- Tenant hint: Header, cookie or session value naming the requested tenant.
"""

from __future__ import annotations

import logging

from flask import g, jsonify, request, session
from flask_login import current_user

from ..config import AppSettings
from ..persistence.helpers import is_tenancy_enabled
from ..web.filters import Filter
from .provider import TenantConnectionProvider
from .resolver import TenantResolver

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-ID"
TENANT_COOKIE = "TENANTID"
TENANT_SESSION_KEY = "tenant_id"
USER_TENANT_ATTR = "tenant_id"


class PreSessionTenantFilter(Filter):
    """Bind the requested tenant before the persistence session opens."""

    name = "tenant-pre-session"

    def __init__(self, settings: AppSettings, provider: TenantConnectionProvider | None = None):
        self.enabled = is_tenancy_enabled(settings)
        self.default_tenant = settings.get("tenants.default")
        self.provider = provider or TenantConnectionProvider(settings)

    def requested_tenant(self) -> str | None:
        return (
            request.headers.get(TENANT_HEADER)
            or request.cookies.get(TENANT_COOKIE)
            or session.get(TENANT_SESSION_KEY)
            or self.default_tenant
        )

    def before(self):
        if not self.enabled:
            return None
        tenant_id = self.requested_tenant()
        if tenant_id and not self.provider.has_tenant(tenant_id):
            logger.warning("Request for unknown tenant %r on %s", tenant_id, request.path)
            return jsonify({"error": "unknown_tenant", "tenant": tenant_id}), 404
        TenantResolver.set_current(tenant_id)
        return None

    def teardown(self, exc):
        g.pop("tenant_id", None)


class PostSessionTenantFilter(Filter):
    """Pin the resolved tenant to the authenticated user's session."""

    name = "tenant-post-session"

    def __init__(self, settings: AppSettings):
        self.enabled = is_tenancy_enabled(settings)
        self.secure_cookie = settings.get_bool("session.cookie.secure", False)

    def before(self):
        if not self.enabled:
            return None
        tenant_id = TenantResolver.current()
        if tenant_id is None or not current_user.is_authenticated:
            return None
        user_tenant = getattr(current_user, USER_TENANT_ATTR, None)
        if user_tenant is not None and user_tenant != tenant_id:
            logger.warning(
                "User %s belongs to tenant %r, rejected request for %r",
                current_user.get_id(),
                user_tenant,
                tenant_id,
            )
            return jsonify({"error": "tenant_mismatch"}), 403
        session[TENANT_SESSION_KEY] = tenant_id
        return None

    def after(self, response):
        if not self.enabled:
            return response
        tenant_id = TenantResolver.current()
        if tenant_id and request.cookies.get(TENANT_COOKIE) != tenant_id:
            response.set_cookie(
                TENANT_COOKIE,
                tenant_id,
                httponly=True,
                secure=self.secure_cookie,
                samesite="Lax",
            )
        return response
