"""Config schema: Logging and i18n settings."""

FIELDS = [
    {
        "key": "logging.level",
        "cast": "str",
        "default": "DEBUG",
        "description": "Root log level.",
        "options": ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"),
        "default_by_mode": {"prod": "INFO"},
    },
    {
        "key": "logging.redact_pii",
        "cast": "bool",
        "default": True,
        "description": "Mask emails, tokens and url credentials in log output.",
    },
    {
        "key": "i18n.dir",
        "cast": "str",
        "default": None,
        "description": "Directory holding messages_<lang>.json bundles.",
    },
]

SECTION = {
    "key": "logging",
    "title": "Logging & i18n",
    "note": None,
}
