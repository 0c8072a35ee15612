"""Property names understood by the ORM initializer.

Every key produced by the composer lives under the ORM-native ``sqlalchemy.``
namespace, so any setting with that prefix can override a composed default.
"""

ORM_NAMESPACE = "sqlalchemy."

# connection
DATASOURCE = "sqlalchemy.connection.datasource"
DRIVER = "sqlalchemy.connection.driver"
URL = "sqlalchemy.connection.url"
USER = "sqlalchemy.connection.username"
PASSWORD = "sqlalchemy.connection.password"
AUTOCOMMIT = "sqlalchemy.connection.autocommit"
DDL_AUTO = "sqlalchemy.schema.auto"

CONNECTION_KEYS = (DRIVER, URL, USER, PASSWORD)

# engine / pool, every ``sqlalchemy.engine.<option>`` becomes a create_engine() kwarg
ENGINE_PREFIX = "sqlalchemy.engine."
POOL_CLASS = "sqlalchemy.engine.poolclass"
POOL_SIZE = "sqlalchemy.engine.pool_size"
POOL_MAX_OVERFLOW = "sqlalchemy.engine.max_overflow"
POOL_RECYCLE = "sqlalchemy.engine.pool_recycle"
POOL_PRE_PING = "sqlalchemy.engine.pool_pre_ping"

# mapping / session hooks
MAX_FETCH_DEPTH = "sqlalchemy.max_fetch_depth"
DIALECT_RESOLVERS = "sqlalchemy.dialect_resolvers"
IMPLICIT_NAMING_STRATEGY = "sqlalchemy.naming.implicit_strategy"
PHYSICAL_NAMING_STRATEGY = "sqlalchemy.naming.physical_strategy"
SCANNER = "sqlalchemy.archive.scanner"
INTERCEPTOR = "sqlalchemy.session.interceptor"

# second-level cache
SHARED_CACHE_MODE = "sqlalchemy.cache.shared_mode"
USE_SECOND_LEVEL_CACHE = "sqlalchemy.cache.use_second_level_cache"
USE_QUERY_CACHE = "sqlalchemy.cache.use_query_cache"
CACHE_REGION_FACTORY = "sqlalchemy.cache.region.factory"
CACHE_PROVIDER = "sqlalchemy.cache.provider"

# multi-tenancy
MULTI_TENANT = "sqlalchemy.multi_tenancy"
MULTI_TENANT_CONNECTION_PROVIDER = "sqlalchemy.multi_tenancy.connection_provider"
MULTI_TENANT_IDENTIFIER_RESOLVER = "sqlalchemy.multi_tenancy.identifier_resolver"

# full-text search
SEARCH_AUTOREGISTER_LISTENERS = "sqlalchemy.search.autoregister_listeners"
SEARCH_MODEL_MAPPING = "sqlalchemy.search.model_mapping"
SEARCH_DIRECTORY_PROVIDER = "sqlalchemy.search.default.directory_provider"
SEARCH_INDEX_BASE = "sqlalchemy.search.default.index_base"

SECRET_KEYS = (PASSWORD,)
