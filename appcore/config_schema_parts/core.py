"""Config schema: Application core.

Synopsis:
Defines mode, secret key and locale settings.
"""

FIELDS = [
    {
        "key": "application.mode",
        "cast": "str",
        "default": "dev",
        "description": "Runtime mode.",
        "options": ("dev", "test", "prod"),
        "recommended": "prod",
    },
    {
        "key": "application.secret_key",
        "cast": "str",
        "default": None,
        "description": "Flask secret key used to sign session cookies.",
        "required_in": ("prod",),
        "secret": True,
    },
    {
        "key": "application.locales",
        "cast": "list",
        "default": ["en"],
        "description": "Supported locales; the first is the fallback.",
    },
    {
        "key": "application.base_url",
        "cast": "str",
        "default": None,
        "description": "Public base url, when it differs from the request host.",
    },
    {
        "key": "application.debug",
        "cast": "bool",
        "default": False,
        "description": "Enable Flask debug in dev mode.",
    },
]

SECTION = {
    "key": "core",
    "title": "Application",
    "note": None,
}
