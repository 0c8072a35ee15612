from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
from typing import Iterable

from .tags import has_tag

logger = logging.getLogger(__name__)


class MetaScanner:
    """Find classes across packages by base type and tags."""

    def __init__(self, packages: Iterable[str] = (), types: Iterable[type] = ()):
        self.packages = tuple(packages)
        self.extra_types = tuple(types)
        self._types: list[type] | None = None

    def _modules(self):
        for package_path in self.packages:
            try:
                package = importlib.import_module(package_path)
            except ImportError as exc:
                logger.warning("Skipping package %s: %s", package_path, exc)
                continue
            yield package
            if not hasattr(package, "__path__"):
                continue
            for _finder, name, _ispkg in pkgutil.walk_packages(package.__path__, prefix=f"{package_path}."):
                try:
                    yield importlib.import_module(name)
                except ImportError as exc:
                    logger.warning("Skipping module %s: %s", name, exc)

    def all_types(self) -> list[type]:
        if self._types is None:
            seen: dict[int, type] = {}
            for module in self._modules():
                for _name, obj in inspect.getmembers(module, inspect.isclass):
                    if obj.__module__ == module.__name__:
                        seen.setdefault(id(obj), obj)
            for obj in self.extra_types:
                seen.setdefault(id(obj), obj)
            self._types = sorted(seen.values(), key=lambda cls: (cls.__module__, cls.__qualname__))
        return list(self._types)

    def find_subtypes_of(self, base: type = object) -> "SubTypeQuery":
        return SubTypeQuery(self, base)


class SubTypeQuery:
    """``scanner.find_subtypes_of(Base).having(tag).having(other).any().find()``"""

    def __init__(self, scanner: MetaScanner, base: type):
        self.scanner = scanner
        self.base = base
        self.tags: list = []
        self.match_any = False

    def having(self, tag) -> "SubTypeQuery":
        self.tags.append(tag)
        return self

    def any(self) -> "SubTypeQuery":
        self.match_any = True
        return self

    def _accepts(self, cls: type) -> bool:
        if not issubclass(cls, self.base):
            return False
        if not self.tags:
            return True
        hits = [has_tag(cls, tag) for tag in self.tags]
        return any(hits) if self.match_any else all(hits)

    def find(self) -> list[type]:
        return [cls for cls in self.scanner.all_types() if self._accepts(cls)]
