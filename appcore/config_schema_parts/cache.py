"""Config schema: Second-level cache settings."""

FIELDS = [
    {
        "key": "db.cache.enabled",
        "cast": "bool",
        "default": False,
        "description": "Enable the second-level and query caches.",
    },
    {
        "key": "db.cache.shared_mode",
        "cast": "str",
        "default": "ENABLE_SELECTIVE",
        "description": "Shared cache mode; NONE or DISABLED turns caching off.",
        "options": ("ALL", "NONE", "DISABLED", "ENABLE_SELECTIVE", "DISABLE_SELECTIVE", "UNSPECIFIED"),
    },
    {
        "key": "db.cache.timeout",
        "cast": "int",
        "default": 300,
        "description": "Default cache entry timeout in seconds.",
    },
    {
        "key": "db.cache.redis_url",
        "cast": "str",
        "default": None,
        "description": "Redis url when sqlalchemy.cache.provider is RedisCache.",
        "secret": True,
    },
    {
        "key": "sqlalchemy.cache.provider",
        "cast": "str",
        "default": "SimpleCache",
        "description": "Flask-Caching backend used by the default region factory.",
    },
]

SECTION = {
    "key": "cache",
    "title": "Cache",
    "note": None,
}
