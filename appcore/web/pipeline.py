"""Request pipeline composition.

Synopsis:
Builds the ordered filter chain every request passes through and installs
the auxiliary endpoints that sit beside it (no-cache scripts, i18n bundles,
session lifecycle listener).
"""

from __future__ import annotations

import logging

from flask import Flask

from ..config import AppSettings
from ..tenants.filters import PostSessionTenantFilter, PreSessionTenantFilter
from ..tenants.provider import TenantConnectionProvider
from .app_filter import AppFilter
from .auth import AuthenticationFilter
from .cors import CorsFilter
from .filters import FilterChain, FilterStage, bind, install_filter_chain
from .nocache import STATIC_URL_PATTERNS, NoCacheFilter
from .persist import PersistenceSessionFilter
from .proxy import ProxyFilter

logger = logging.getLogger(__name__)


def build_filter_chain(
    settings: AppSettings,
    persistence,
    tenant_provider: TenantConnectionProvider | None = None,
) -> FilterChain:
    """Return the chain in its required order; the constructor rejects any other."""
    return FilterChain(
        [
            bind(FilterStage.PROXY, ProxyFilter(settings)),
            bind(FilterStage.CORS, CorsFilter(settings)),
            # tenant must be known before the session binds to a database
            bind(FilterStage.TENANT_PRE, PreSessionTenantFilter(settings, tenant_provider)),
            bind(FilterStage.PERSISTENCE, PersistenceSessionFilter(persistence)),
            bind(FilterStage.APPLICATION, AppFilter(settings)),
            bind(FilterStage.AUTHENTICATION, AuthenticationFilter(settings)),
            bind(FilterStage.TENANT_POST, PostSessionTenantFilter(settings)),
            bind(FilterStage.AUXILIARY, NoCacheFilter(), "/js/*", *STATIC_URL_PATTERNS),
        ]
    )


def install_pipeline(app: Flask, settings: AppSettings, persistence) -> FilterChain:
    from .i18n import register_i18n
    from .session_listener import register_session_listener

    routing = getattr(persistence, "tenant_routing", None)
    chain = build_filter_chain(settings, persistence, routing.provider if routing else None)
    install_filter_chain(app, chain)
    register_i18n(app, settings)
    register_session_listener(app, settings)
    for line in chain.describe():
        logger.debug("filter %s", line)
    return chain
