from appcore.config import AppSettings
from appcore.persistence import keys
from appcore.persistence.cache import DEFAULT_CACHE_PROVIDER, DEFAULT_CACHE_REGION_FACTORY, apply_cache
from appcore.persistence.composer import compose
from appcore.persistence.properties import PersistenceConfiguration, TenancyMode
from appcore.persistence.search import DEFAULT_DIRECTORY_PROVIDER, apply_search
from appcore.persistence.tenancy import apply_tenancy

TENANCY_HOOKS = (keys.MULTI_TENANT_CONNECTION_PROVIDER, keys.MULTI_TENANT_IDENTIFIER_RESOLVER)


def test_tenancy_disabled_never_references_hooks():
    config = compose(AppSettings({"tenants.enable": "false"}))

    assert config.tenancy_mode is TenancyMode.DISABLED
    assert keys.MULTI_TENANT not in config
    for key in TENANCY_HOOKS:
        assert key not in config


def test_tenancy_enabled_sets_provider_and_resolver_together():
    config = compose(AppSettings({"tenants.enable": "true"}))

    assert config.tenancy_mode is TenancyMode.DATABASE_PER_TENANT
    assert config[keys.MULTI_TENANT] == "DATABASE"
    assert config[keys.MULTI_TENANT_CONNECTION_PROVIDER].endswith("TenantConnectionProvider")
    assert config[keys.MULTI_TENANT_IDENTIFIER_RESOLVER].endswith("TenantResolver")


def test_tenancy_selector_is_gated():
    config = PersistenceConfiguration()

    apply_tenancy(AppSettings({}), config)

    assert len(config) == 0


def test_cache_disabled_leaves_flags_absent():
    config = compose(AppSettings({}))

    assert keys.USE_SECOND_LEVEL_CACHE not in config
    assert keys.USE_QUERY_CACHE not in config
    assert not config.cache_mode.enabled


def test_cache_enabled_sets_both_flags_and_default_provider():
    config = compose(AppSettings({"db.cache.enabled": "true"}))

    assert config[keys.USE_SECOND_LEVEL_CACHE] == "true"
    assert config[keys.USE_QUERY_CACHE] == "true"
    assert config[keys.SHARED_CACHE_MODE] == "ENABLE_SELECTIVE"
    assert config[keys.CACHE_REGION_FACTORY] == DEFAULT_CACHE_REGION_FACTORY
    assert config[keys.CACHE_PROVIDER] == DEFAULT_CACHE_PROVIDER
    assert config.cache_mode.enabled


def test_shared_mode_none_disables_cache():
    config = PersistenceConfiguration()

    apply_cache(AppSettings({"db.cache.enabled": "true", "db.cache.shared_mode": "none"}), config)

    assert len(config) == 0


def test_custom_region_factory_is_installed_without_provider():
    settings = AppSettings(
        {
            "db.cache.enabled": "true",
            "db.cache.shared_mode": "ALL",
            "sqlalchemy.cache.region.factory": "myapp.cache.build_config",
        }
    )
    config = PersistenceConfiguration()

    apply_cache(settings, config)

    assert config[keys.SHARED_CACHE_MODE] == "ALL"
    assert config[keys.CACHE_REGION_FACTORY] == "myapp.cache.build_config"
    assert keys.CACHE_PROVIDER not in config


def test_explicit_provider_with_default_factory():
    settings = AppSettings({"db.cache.enabled": "true", "sqlalchemy.cache.provider": "RedisCache"})

    config = compose(settings)

    assert config[keys.CACHE_PROVIDER] == "RedisCache"


def test_search_disabled_removes_index_settings():
    config = PersistenceConfiguration(
        {
            keys.SEARCH_INDEX_BASE: "/var/indexes",
            keys.SEARCH_DIRECTORY_PROVIDER: "filesystem",
        }
    )

    apply_search(AppSettings({"search.enabled": "false"}), config)

    assert config[keys.SEARCH_AUTOREGISTER_LISTENERS] == "false"
    assert keys.SEARCH_INDEX_BASE not in config
    assert keys.SEARCH_DIRECTORY_PROVIDER not in config
    assert not config.search_mode.enabled


def test_search_disabled_scrubs_passthrough_index_base():
    config = compose(AppSettings({"sqlalchemy.search.default.index_base": "/srv/idx"}))

    assert config[keys.SEARCH_AUTOREGISTER_LISTENERS] == "false"
    assert keys.SEARCH_INDEX_BASE not in config


def test_search_enabled_derives_defaults_once():
    settings = AppSettings({"search.enabled": "true"})
    config = PersistenceConfiguration()

    apply_search(settings, config)
    first = dict(config)
    apply_search(settings, config)

    assert dict(config) == first
    assert config[keys.SEARCH_DIRECTORY_PROVIDER] == DEFAULT_DIRECTORY_PROVIDER
    assert config[keys.SEARCH_INDEX_BASE].endswith("indexes")
    assert config[keys.SEARCH_MODEL_MAPPING].endswith("SearchMappingFactory")
    assert config.search_mode.enabled


def test_search_enabled_keeps_customized_index_settings():
    settings = AppSettings(
        {
            "search.enabled": "true",
            "sqlalchemy.search.default.index_base": "/srv/idx",
            "sqlalchemy.search.default.directory_provider": "memory",
        }
    )

    config = compose(settings)

    assert config[keys.SEARCH_INDEX_BASE] == "/srv/idx"
    assert config[keys.SEARCH_DIRECTORY_PROVIDER] == "memory"


def test_search_index_base_expands_placeholders(tmp_path, monkeypatch):
    monkeypatch.setenv("TMPDIR", str(tmp_path))
    monkeypatch.setattr("tempfile.tempdir", None)
    config = PersistenceConfiguration()

    apply_search(AppSettings({"search.enabled": "true"}), config)

    assert config[keys.SEARCH_INDEX_BASE] == str(tmp_path / "appcore" / "indexes")
