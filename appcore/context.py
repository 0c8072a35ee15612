from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from flask import Flask, current_app, has_app_context

from .config import AppSettings
from .interception.registry import InterceptorRegistry
from .persistence.properties import PersistenceConfiguration
from .persistence.scanner import EntityFilters

CONTEXT_EXTENSION = "appcore"


@dataclass
class AppContext:
    """Everything composed at startup for one Flask app."""

    app: Flask
    settings: AppSettings
    mode: str
    persistence_config: PersistenceConfiguration
    persistence: Any
    interceptors: InterceptorRegistry
    entity_filters: EntityFilters = field(default_factory=EntityFilters)
    filter_chain: Any = None
    resources: list[type] = field(default_factory=list)
    sockets: Any = None
    deployment: Any = None
    extras: dict[str, Any] = field(default_factory=dict)

    def dependencies(self) -> dict[str, object]:
        """Objects injectable into resources by constructor parameter name."""
        deps: dict[str, object] = {
            "app": self.app,
            "settings": self.settings,
            "context": self,
            "persistence": self.persistence,
        }
        deps.update(self.extras)
        return deps


def current_context() -> AppContext | None:
    if not has_app_context():
        return None
    return current_app.extensions.get(CONTEXT_EXTENSION)
