import pytest
from flask import Flask
from sqlalchemy.pool import QueuePool, StaticPool

from appcore.context import CONTEXT_EXTENSION
from appcore.errors import CompositionError, PersistenceUnavailableError
from appcore.extensions import db
from appcore.persistence import keys
from appcore.persistence.audit import _current_user_id
from appcore.persistence.properties import PersistenceConfiguration
from appcore.persistence.service import PERSISTENCE_EXTENSION, engine_options_from
from tests.sample_app.models import Customer


POOLED = {
    keys.POOL_CLASS: "sqlalchemy.pool.QueuePool",
    keys.POOL_SIZE: "5",
    keys.POOL_MAX_OVERFLOW: "15",
    keys.POOL_RECYCLE: "300",
    keys.POOL_PRE_PING: "true",
}


def _cache_backend(app):
    return next(iter(app.extensions["cache"].values()))


def simple_cache_region(app, settings):
    return {"CACHE_TYPE": "SimpleCache", "CACHE_THRESHOLD": 50}


def test_engine_options_are_typed():
    options = engine_options_from(PersistenceConfiguration(POOLED), "postgresql://db/app")

    assert options == {
        "poolclass": QueuePool,
        "pool_size": 5,
        "max_overflow": 15,
        "pool_recycle": 300,
        "pool_pre_ping": True,
    }


def test_engine_options_drop_queue_sizing_for_sqlite():
    options = engine_options_from(PersistenceConfiguration(POOLED), "sqlite:///app.db")

    assert options == {"pool_recycle": 300, "pool_pre_ping": True}


def test_in_memory_sqlite_shares_one_connection():
    options = engine_options_from(PersistenceConfiguration(POOLED), "sqlite://")

    assert options["poolclass"] is StaticPool
    assert options["connect_args"] == {"check_same_thread": False}


def test_autocommit_sets_isolation_level():
    config = PersistenceConfiguration({keys.AUTOCOMMIT: "true"})

    assert engine_options_from(config, "postgresql://db/app") == {"isolation_level": "AUTOCOMMIT"}


def test_bad_pool_size_aborts():
    with pytest.raises(CompositionError):
        engine_options_from(PersistenceConfiguration({keys.POOL_SIZE: "lots"}), "postgresql://db/app")


def test_unknown_hook_aborts_startup(make_app):
    with pytest.raises(CompositionError, match="cannot be imported"):
        make_app({keys.INTERCEPTOR: "tests.sample_app.missing.Interceptor"})


def test_missing_url_leaves_sessions_unavailable(make_app):
    app = make_app({"db.default.url": ""})
    persistence = app.extensions[PERSISTENCE_EXTENSION]

    assert not persistence.available
    with pytest.raises(PersistenceUnavailableError):
        persistence.session

    response = app.test_client().get("/health")
    assert response.get_json()["database"] is False


def test_managed_datasource_is_looked_up_by_name(make_app):
    app = make_app(
        {"db.default.url": "", "db.default.ddl": "", "db.default.datasource": "main"},
        config={"APPCORE_DATASOURCES": {"main": "sqlite://"}},
    )
    persistence = app.extensions[PERSISTENCE_EXTENSION]

    assert persistence.available
    assert persistence.url == "sqlite://"
    assert persistence.config.uses_datasource


def test_entities_are_scanned(app):
    persistence = app.extensions[PERSISTENCE_EXTENSION]

    assert persistence.entity("Customer") is Customer
    assert persistence.entity("tests.sample_app.models.Customer") is Customer


def test_audit_columns_are_stamped(app):
    with app.app_context():
        customer = Customer(name="Ada")
        db.session.add(customer)
        db.session.commit()

        assert customer.created_on is not None
        assert customer.updated_on is None

        customer.name = "Ada Lovelace"
        db.session.commit()

        assert customer.updated_on is not None


def test_search_indexing_queues_changed_rows(make_app):
    app = make_app({"search.enabled": "true"})
    persistence = app.extensions[PERSISTENCE_EXTENSION]

    assert persistence.search_mapping["Customer"] == ("name", "email")

    with app.app_context():
        db.session.add(Customer(name="Grace"))
        db.session.commit()

    assert persistence.indexing_listener.drain() == [("Customer", (1,))]


def test_search_disabled_installs_no_listener(app):
    assert app.extensions[PERSISTENCE_EXTENSION].indexing_listener is None


def test_cache_disabled_uses_null_cache(app):
    assert type(_cache_backend(app)).__name__ == "NullCache"


def test_cache_enabled_uses_configured_provider(make_app):
    app = make_app({"db.cache.enabled": "true"})

    assert type(_cache_backend(app)).__name__ == "SimpleCache"


def test_custom_cache_region_factory_supplies_config(make_app):
    app = make_app(
        {
            "db.cache.enabled": "true",
            keys.CACHE_REGION_FACTORY: "tests.test_persistence_service.simple_cache_region",
        }
    )

    assert type(_cache_backend(app)).__name__ == "SimpleCache"


def test_stop_removes_session_listeners(make_app):
    app = make_app()
    persistence = app.extensions[PERSISTENCE_EXTENSION]

    persistence.stop()

    assert persistence._listeners == []
    assert not persistence.started


def test_entity_packages_filter_the_scan(make_app):
    excluded = make_app(excluded_entity_packages=("tests.sample_app",))
    included = make_app(entity_packages=("tests.sample_app.models",))

    assert excluded.extensions[PERSISTENCE_EXTENSION].entities == {}
    assert excluded.extensions[CONTEXT_EXTENSION].entity_filters.excludes == ("tests.sample_app",)
    assert included.extensions[PERSISTENCE_EXTENSION].entity("Customer") is Customer


def test_entity_filters_belong_to_one_app(make_app):
    make_app(excluded_entity_packages=("tests.sample_app",))
    app = make_app()

    assert app.extensions[PERSISTENCE_EXTENSION].entity("Customer") is Customer


def test_audit_user_is_empty_without_a_login_manager():
    bare = Flask(__name__)

    with bare.test_request_context("/"):
        assert _current_user_id() is None
