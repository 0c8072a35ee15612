"""Config schema: Request pipeline settings.

Synopsis:
Defines proxy, CORS, authentication and session cookie keys.
"""

FIELDS = [
    {
        "key": "proxy.enabled",
        "cast": "bool",
        "default": False,
        "description": "Trust X-Forwarded-* headers from a reverse proxy.",
        "recommended": "true",
    },
    {
        "key": "proxy.x_for",
        "cast": "int",
        "default": 1,
        "description": "Number of trusted X-Forwarded-For hops.",
    },
    {
        "key": "cors.allow_origin",
        "cast": "list",
        "default": [],
        "description": "Allowed CORS origins; empty disables CORS handling.",
    },
    {
        "key": "cors.allow_credentials",
        "cast": "bool",
        "default": True,
        "description": "Send Access-Control-Allow-Credentials.",
    },
    {
        "key": "cors.max_age",
        "cast": "int",
        "default": 1728000,
        "description": "Preflight cache lifetime in seconds.",
    },
    {
        "key": "auth.public_paths",
        "cast": "list",
        "default": [],
        "description": "Extra path globs reachable without signing in.",
    },
    {
        "key": "auth.disabled",
        "cast": "bool",
        "default": False,
        "description": "Skip the authentication filter entirely.",
    },
    {
        "key": "session.cookie.secure",
        "cast": "bool",
        "default": False,
        "description": "Only send session cookies over HTTPS.",
        "recommended": "true",
    },
    {
        "key": "session.cookie.samesite",
        "cast": "str",
        "default": "Lax",
        "description": "SameSite attribute of the session cookie.",
        "options": ("Lax", "Strict", "None"),
    },
    {
        "key": "session.timeout",
        "cast": "int",
        "default": 60,
        "description": "Session lifetime in minutes.",
    },
]

SECTION = {
    "key": "web",
    "title": "Web",
    "note": None,
}
