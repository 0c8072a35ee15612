import logging

import pytest

from appcore.config import AppSettings
from appcore.errors import CompositionError
from appcore.persistence import keys
from appcore.persistence.composer import DEFAULT_POOL, PersistenceComposer, compose
from appcore.persistence.helpers import normalize_unit_name


@pytest.mark.parametrize(
    "unit, expected",
    [
        ("persistenceUnit", "default"),
        ("accountsPU", "accounts"),
        ("reportingUnit", "reporting"),
        ("audit", "audit"),
    ],
)
def test_unit_names_map_to_settings_namespace(unit, expected):
    assert normalize_unit_name(unit) == expected


@pytest.mark.parametrize("unit", ["", "   ", "PU"])
def test_blank_unit_names_are_rejected(unit):
    with pytest.raises(ValueError):
        normalize_unit_name(unit)


def test_explicit_connection_settings_are_copied():
    settings = AppSettings({"db.accounts.driver": "X", "db.accounts.url": " Y "})

    config = compose(settings, "accountsPU")

    assert config[keys.DRIVER] == "X"
    assert config[keys.URL] == "Y"
    assert keys.DATASOURCE not in config
    assert keys.USER not in config
    assert keys.PASSWORD not in config


def test_managed_datasource_writes_only_the_datasource_key():
    settings = AppSettings(
        {
            "db.default.datasource": "jdbc/myDS",
            "db.default.url": "postgresql://ignored",
            "db.default.driver": "psycopg",
        }
    )

    config = compose(settings)

    assert config[keys.DATASOURCE] == "jdbc/myDS"
    for key in keys.CONNECTION_KEYS:
        assert key not in config
    for key in DEFAULT_POOL:
        assert key not in config


def test_managed_datasource_removes_passthrough_connection_keys():
    settings = AppSettings({"db.default.datasource": "jdbc/myDS", "sqlalchemy.connection.url": "sqlite://"})

    config = compose(settings)

    assert config[keys.DATASOURCE] == "jdbc/myDS"
    assert keys.URL not in config


def test_missing_datasource_name_is_logged_and_skipped(caplog):
    with caplog.at_level(logging.WARNING, logger="appcore.persistence.composer"):
        config = compose(AppSettings({}), datasource_managed=True)

    assert keys.DATASOURCE not in config
    assert "not applied" in caplog.text
    assert config[keys.INTERCEPTOR]


def test_defaults_are_always_present():
    config = compose(AppSettings({}))

    assert config[keys.AUTOCOMMIT] == "false"
    assert config[keys.MAX_FETCH_DEPTH] == "3"
    assert config[keys.DIALECT_RESOLVERS].endswith("CustomDialectResolver")
    assert config[keys.IMPLICIT_NAMING_STRATEGY].endswith("ImplicitNamingStrategy")
    assert config[keys.PHYSICAL_NAMING_STRATEGY].endswith("PhysicalNamingStrategy")
    assert config[keys.INTERCEPTOR].endswith("AuditInterceptor")
    assert config[keys.SCANNER].endswith("EntityScanner")
    assert config[keys.POOL_SIZE] == "5"


def test_autoscan_off_leaves_scanner_out():
    config = PersistenceComposer(AppSettings({}), autoscan=False).compose()

    assert keys.SCANNER not in config


def test_orm_settings_override_composed_defaults():
    settings = AppSettings(
        {
            "sqlalchemy.connection.autocommit": "true",
            "sqlalchemy.engine.pool_size": "20",
            "sqlalchemy.engine.echo": "true",
        }
    )

    config = compose(settings)

    assert config[keys.AUTOCOMMIT] == "true"
    assert config[keys.POOL_SIZE] == "20"
    assert config["sqlalchemy.engine.echo"] == "true"


def test_blank_connection_values_are_left_out():
    settings = AppSettings({"db.default.url": "sqlite://", "db.default.user": "   "})

    config = compose(settings)

    assert config[keys.URL] == "sqlite://"
    assert keys.USER not in config


def test_invariant_violation_is_fatal():
    settings = AppSettings({"sqlalchemy.multi_tenancy.connection_provider": "somewhere.Provider"})

    with pytest.raises(CompositionError, match="tenancy is disabled"):
        compose(settings)


def test_cache_flags_cannot_be_split_by_overrides():
    settings = AppSettings({"sqlalchemy.cache.use_query_cache": "true"})

    with pytest.raises(CompositionError):
        compose(settings)


def test_masked_configuration_hides_password():
    config = compose(AppSettings({"db.default.url": "sqlite://", "db.default.password": "hunter2"}))

    assert config[keys.PASSWORD] == "hunter2"
    assert config.masked()[keys.PASSWORD] == "********"
    assert "hunter2" not in repr(config)
