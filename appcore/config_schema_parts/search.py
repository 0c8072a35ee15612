"""Config schema: Full-text search settings."""

FIELDS = [
    {
        "key": "search.enabled",
        "cast": "bool",
        "default": False,
        "description": "Register the indexing listener for __searchable__ entities.",
    },
    {
        "key": "sqlalchemy.search.default.index_base",
        "cast": "str",
        "default": "{tmpdir}/appcore/indexes",
        "description": "Root directory of the search indexes.",
    },
    {
        "key": "sqlalchemy.search.default.directory_provider",
        "cast": "str",
        "default": "filesystem",
        "description": "Index storage provider.",
    },
]

SECTION = {
    "key": "search",
    "title": "Search",
    "note": None,
}
