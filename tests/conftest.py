"""
Pytest configuration and shared fixtures for appcore tests.
"""
import pytest

from appcore import create_app
from appcore.config import AppSettings
from appcore.lifecycle import lifecycle_for
from tests.sample_app.resources import SAMPLE_TYPES


BASE_SETTINGS = {
    "application.mode": "test",
    "application.secret_key": "test-secret-key",
    "db.default.url": "sqlite://",
    "db.default.ddl": "create",
    "auth.disabled": "true",
    "logging.level": "WARNING",
}


@pytest.fixture
def settings():
    return AppSettings(BASE_SETTINGS)


@pytest.fixture
def make_app(settings):
    """Factory for apps built on the shared test settings; every app is stopped afterwards."""
    created = []

    def _make(overrides=None, **kwargs):
        kwargs.setdefault("types", SAMPLE_TYPES)
        app = create_app(settings.with_overrides(overrides or {}), **kwargs)
        created.append(app)
        return app

    yield _make

    for app in created:
        lifecycle = lifecycle_for(app)
        if lifecycle is not None:
            lifecycle.on_stop()


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()
