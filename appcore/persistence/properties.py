from __future__ import annotations

import enum
from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import Iterator, Mapping

from ..errors import CompositionError
from . import keys


class TenancyMode(enum.Enum):
    DISABLED = "disabled"
    DATABASE_PER_TENANT = "database"


@dataclass(frozen=True)
class CacheMode:
    enabled: bool
    region_factory: str | None = None
    provider: str | None = None


@dataclass(frozen=True)
class SearchMode:
    enabled: bool
    index_base: str | None = None
    mapping_source: str | None = None


class PersistenceConfiguration(MutableMapping):
    """Ordered ``str -> str`` property bag handed to the ORM initializer."""

    def __init__(self, initial: Mapping[str, object] | None = None):
        self._props: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self[key] = value

    def __getitem__(self, key: str) -> str:
        return self._props[key]

    def __setitem__(self, key: str, value: object) -> None:
        if value is None:
            raise ValueError(f"Property {key!r} cannot be None")
        self._props[str(key)] = str(value)

    def __delitem__(self, key: str) -> None:
        del self._props[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._props)

    def __len__(self) -> int:
        return len(self._props)

    def __repr__(self) -> str:
        return f"PersistenceConfiguration({self.masked()!r})"

    def set_if_absent(self, key: str, value: object) -> bool:
        if key in self._props:
            return False
        self[key] = value
        return True

    def remove(self, key: str) -> None:
        self._props.pop(key, None)

    def with_prefix(self, prefix: str) -> dict[str, str]:
        return {key: value for key, value in self._props.items() if key.startswith(prefix)}

    def masked(self) -> dict[str, str]:
        return {key: ("********" if key in keys.SECRET_KEYS else value) for key, value in self._props.items()}

    def is_true(self, key: str) -> bool:
        return self._props.get(key, "").strip().lower() == "true"

    @property
    def tenancy_mode(self) -> TenancyMode:
        if self._props.get(keys.MULTI_TENANT) == "DATABASE":
            return TenancyMode.DATABASE_PER_TENANT
        return TenancyMode.DISABLED

    @property
    def cache_mode(self) -> CacheMode:
        if not self.is_true(keys.USE_SECOND_LEVEL_CACHE):
            return CacheMode(enabled=False)
        return CacheMode(
            enabled=True,
            region_factory=self._props.get(keys.CACHE_REGION_FACTORY),
            provider=self._props.get(keys.CACHE_PROVIDER),
        )

    @property
    def search_mode(self) -> SearchMode:
        if self._props.get(keys.SEARCH_AUTOREGISTER_LISTENERS, "").lower() == "false":
            return SearchMode(enabled=False)
        if keys.SEARCH_MODEL_MAPPING not in self._props:
            return SearchMode(enabled=False)
        return SearchMode(
            enabled=True,
            index_base=self._props.get(keys.SEARCH_INDEX_BASE),
            mapping_source=self._props.get(keys.SEARCH_MODEL_MAPPING),
        )

    @property
    def uses_datasource(self) -> bool:
        return keys.DATASOURCE in self._props

    def violations(self) -> list[str]:
        problems: list[str] = []

        for required in (keys.IMPLICIT_NAMING_STRATEGY, keys.PHYSICAL_NAMING_STRATEGY, keys.INTERCEPTOR):
            if not self._props.get(required):
                problems.append(f"{required} must be set")

        if self.uses_datasource:
            clashing = [key for key in keys.CONNECTION_KEYS if key in self._props]
            if clashing:
                problems.append(f"{keys.DATASOURCE} cannot be combined with {', '.join(clashing)}")

        tenancy_hooks = [
            key
            for key in (keys.MULTI_TENANT_CONNECTION_PROVIDER, keys.MULTI_TENANT_IDENTIFIER_RESOLVER)
            if self._props.get(key)
        ]
        if self.tenancy_mode is TenancyMode.DATABASE_PER_TENANT and len(tenancy_hooks) != 2:
            problems.append("database-per-tenant requires both a connection provider and an identifier resolver")
        if self.tenancy_mode is TenancyMode.DISABLED and tenancy_hooks:
            problems.append(f"tenancy is disabled but {', '.join(tenancy_hooks)} is set")

        second_level = self._props.get(keys.USE_SECOND_LEVEL_CACHE)
        query_cache = self._props.get(keys.USE_QUERY_CACHE)
        if second_level != query_cache:
            problems.append(
                f"{keys.USE_SECOND_LEVEL_CACHE} and {keys.USE_QUERY_CACHE} must be set together "
                f"(got {second_level!r} and {query_cache!r})"
            )
        if self.is_true(keys.USE_SECOND_LEVEL_CACHE) and not self._props.get(keys.SHARED_CACHE_MODE):
            problems.append(f"{keys.SHARED_CACHE_MODE} is required when caching is enabled")

        if self._props.get(keys.SEARCH_AUTOREGISTER_LISTENERS, "").lower() == "false":
            stale = [key for key in (keys.SEARCH_INDEX_BASE, keys.SEARCH_DIRECTORY_PROVIDER) if key in self._props]
            if stale:
                problems.append(f"search is disabled but {', '.join(stale)} is set")

        return problems

    def validate(self) -> "PersistenceConfiguration":
        problems = self.violations()
        if problems:
            raise CompositionError("Invalid persistence configuration: " + "; ".join(problems))
        return self
