import logging
from typing import Any, Callable, Iterable, Mapping

from flask import Flask

from .config import AppSettings, flask_config
from .config_schema import resolve_settings
from .context import AppContext, current_context
from .lifecycle import AppLifecycle
from .module import AppModule, InstallableModule
from .persistence.helpers import DEFAULT_PERSISTENCE_UNIT
from .resilience import register_resilience_handlers
from .web.auth import configure_login_manager

logger = logging.getLogger(__name__)

__all__ = ["AppContext", "AppSettings", "create_app", "current_context"]


def create_app(
    settings: AppSettings | Mapping[str, str] | None = None,
    *,
    unit: str = DEFAULT_PERSISTENCE_UNIT,
    packages: Iterable[str] = (),
    types: Iterable[type] = (),
    modules: Iterable[InstallableModule] = (),
    entity_packages: Iterable[str] = (),
    excluded_entity_packages: Iterable[str] = (),
    user_loader: Callable[[str], object] | None = None,
    login_view: str | None = None,
    config: Mapping[str, Any] | None = None,
) -> Flask:
    if not isinstance(settings, AppSettings):
        settings = AppSettings.load(overrides=settings)

    app = Flask(__name__)
    _load_base_config(app, settings, config)

    configure_login_manager(app, user_loader, login_view)
    register_resilience_handlers(app)

    module = AppModule(
        settings,
        unit,
        packages=packages,
        types=types,
        modules=modules,
        entity_packages=entity_packages,
        excluded_entity_packages=excluded_entity_packages,
    )
    lifecycle = AppLifecycle(app, module)
    lifecycle.on_start()

    for warning in settings.warnings:
        logger.warning("Settings warning: %s", warning)

    from .management import register_commands

    register_commands(app)
    return app


def _load_base_config(app: Flask, settings: AppSettings, config: Mapping[str, Any] | None) -> None:
    app.config.update(flask_config(settings))
    if config:
        app.config.update(config)

    _, _, warnings = resolve_settings(settings.as_dict(), app.config["APPCORE_MODE"])
    app.config["SETTINGS_DIAGNOSTICS"] = warnings
    for warning in warnings:
        logger.warning("Settings configuration warning: %s", warning)
