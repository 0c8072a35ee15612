from __future__ import annotations

import logging

from ..config import AppSettings
from . import keys
from .helpers import is_cache_enabled, shared_cache_mode
from .properties import PersistenceConfiguration

logger = logging.getLogger(__name__)

DEFAULT_CACHE_REGION_FACTORY = "flask-caching"
DEFAULT_CACHE_PROVIDER = "SimpleCache"


def apply_cache(settings: AppSettings, config: PersistenceConfiguration) -> None:
    """Enable second-level and query caching together, or leave the config cache-free."""
    if not is_cache_enabled(settings):
        return

    config[keys.SHARED_CACHE_MODE] = shared_cache_mode(settings)
    config[keys.USE_SECOND_LEVEL_CACHE] = "true"
    config[keys.USE_QUERY_CACHE] = "true"

    region_factory = settings.get(keys.CACHE_REGION_FACTORY)
    if not region_factory or region_factory == DEFAULT_CACHE_REGION_FACTORY:
        config[keys.CACHE_REGION_FACTORY] = DEFAULT_CACHE_REGION_FACTORY
        provider = settings.get(keys.CACHE_PROVIDER, DEFAULT_CACHE_PROVIDER)
        config[keys.CACHE_PROVIDER] = provider
        logger.info("Cache provider: %s", provider)
    else:
        config[keys.CACHE_REGION_FACTORY] = region_factory
        logger.info("Cache region factory: %s", region_factory)
