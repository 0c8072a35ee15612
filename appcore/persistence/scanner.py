from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntityFilters:
    """Package filters for one app's entity scan; empty includes accept every package."""

    includes: tuple[str, ...] = ()
    excludes: tuple[str, ...] = ()

    @classmethod
    def of(cls, includes: Iterable[str] = (), excludes: Iterable[str] = ()) -> "EntityFilters":
        return cls(tuple(includes), tuple(excludes))


class EntityScanner:
    """Discover mapped entity classes from a declarative registry."""

    def __init__(self, registry=None, filters: EntityFilters | None = None):
        if registry is None:
            from ..extensions import db

            registry = db.Model.registry
        self.registry = registry
        self.filters = filters or EntityFilters()

    @staticmethod
    def _in_packages(module: str, packages: Iterable[str]) -> bool:
        return any(module == pkg or module.startswith(pkg + ".") for pkg in packages)

    def accepts(self, entity: type) -> bool:
        module = entity.__module__
        if self.filters.excludes and self._in_packages(module, self.filters.excludes):
            return False
        if self.filters.includes and not self._in_packages(module, self.filters.includes):
            return False
        return True

    def find_entities(self) -> dict[str, type]:
        """Return accepted entities keyed by both class name and qualified name."""
        found: dict[str, type] = {}
        for mapper in self.registry.mappers:
            entity = mapper.class_
            if not self.accepts(entity):
                continue
            found.setdefault(entity.__name__, entity)
            found[f"{entity.__module__}.{entity.__qualname__}"] = entity
        logger.debug("Entity scan found %d mapped classes", len({id(e) for e in found.values()}))
        return found
