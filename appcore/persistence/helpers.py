from __future__ import annotations

import re

from ..config import AppSettings
from ..errors import ConfigurationError

DEFAULT_PERSISTENCE_UNIT = "persistenceUnit"
DEFAULT_SHARED_CACHE_MODE = "ENABLE_SELECTIVE"
_DISABLED_CACHE_MODES = {"NONE", "DISABLED"}

_UNIT_SUFFIX = re.compile(r"(PU|Unit)$")


def normalize_unit_name(unit: str) -> str:
    """Map a persistence unit name onto its ``db.<unit>.*`` settings namespace."""
    if not unit or not unit.strip():
        raise ValueError("persistence unit name must be a non-empty identifier")
    name = _UNIT_SUFFIX.sub("", unit.strip())
    if name == "persistence":
        return "default"
    if not name:
        raise ValueError(f"persistence unit name {unit!r} is only a suffix")
    return name


def qualified_name(obj) -> str:
    return f"{obj.__module__}.{obj.__qualname__}"


def datasource_setting(unit: str) -> str:
    return f"db.{unit}.datasource"


def is_datasource_used(settings: AppSettings, unit: str) -> bool:
    return settings.get(datasource_setting(unit)) is not None


def datasource_name(settings: AppSettings, unit: str) -> str:
    name = settings.get(datasource_setting(unit))
    if not name:
        raise ConfigurationError(
            f"Datasource is externally managed but {datasource_setting(unit)} is not set."
        )
    return name


def is_cache_enabled(settings: AppSettings) -> bool:
    if not settings.get_bool("db.cache.enabled", False):
        return False
    return shared_cache_mode(settings) not in _DISABLED_CACHE_MODES


def shared_cache_mode(settings: AppSettings) -> str:
    return (settings.get("db.cache.shared_mode", DEFAULT_SHARED_CACHE_MODE) or DEFAULT_SHARED_CACHE_MODE).upper()


def is_tenancy_enabled(settings: AppSettings) -> bool:
    return settings.get_bool("tenants.enable", False)


def is_search_enabled(settings: AppSettings) -> bool:
    return settings.get_bool("search.enabled", False)
