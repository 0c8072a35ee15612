from __future__ import annotations

import logging

from ..config import AppSettings
from ..tenants.provider import TenantConnectionProvider
from ..tenants.resolver import TenantResolver
from . import keys
from .helpers import is_tenancy_enabled, qualified_name
from .properties import PersistenceConfiguration

logger = logging.getLogger(__name__)

DATABASE_STRATEGY = "DATABASE"


def apply_tenancy(settings: AppSettings, config: PersistenceConfiguration) -> None:
    """Switch the configuration to database-per-tenant routing when enabled."""
    if not is_tenancy_enabled(settings):
        return

    # provider and resolver only make sense as a pair
    config[keys.MULTI_TENANT] = DATABASE_STRATEGY
    config[keys.MULTI_TENANT_CONNECTION_PROVIDER] = qualified_name(TenantConnectionProvider)
    config[keys.MULTI_TENANT_IDENTIFIER_RESOLVER] = qualified_name(TenantResolver)
    logger.info("Multi-tenancy enabled (database per tenant)")
