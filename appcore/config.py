from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

_ENV_PREFIX = "APPCORE_CONFIG_"
_CONFIG_FILE_ENV = "APPCORE_CONFIG"
_MODE_KEY = "application.mode"
_DEFAULT_MODE = "dev"
_VALID_MODES = {"dev", "test", "prod"}
_MODE_ALIASES = {"development": "dev", "testing": "test", "production": "prod"}
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ModeInfo:
    name: str
    source: str
    raw_value: str


def _path_placeholders() -> dict[str, str]:
    return {
        "{user.home}": str(Path.home()),
        "{user.dir}": os.getcwd(),
        "{tmpdir}": tempfile.gettempdir(),
    }


def _env_key_to_setting(name: str) -> str:
    # APPCORE_CONFIG_DB_CACHE_SHARED__MODE -> db.cache.shared_mode
    body = name[len(_ENV_PREFIX):].lower()
    return ".".join(body.replace("__", "\0").split("_")).replace("\0", "_")


def read_properties(path: str | os.PathLike[str]) -> dict[str, str]:
    """Parse a ``key = value`` properties file, ignoring blanks and comments."""
    data: dict[str, str] = {}
    with open(path, encoding="utf-8") as handle:
        for line in handle:
            stripped = line.strip()
            if not stripped or stripped.startswith(("#", "!")):
                continue
            for sep in ("=", ":"):
                if sep in stripped:
                    key, value = stripped.split(sep, 1)
                    data[key.strip()] = value.strip()
                    break
    return data


class AppSettings:
    """Read-only view over the application's dotted-key settings."""

    def __init__(self, data: Mapping[str, str] | None = None):
        self._data = {str(key): ("" if value is None else str(value)) for key, value in (data or {}).items()}
        self.warnings: list[str] = []

    @classmethod
    def load(
        cls,
        path: str | os.PathLike[str] | None = None,
        environ: Mapping[str, str] | None = None,
        overrides: Mapping[str, str] | None = None,
    ) -> "AppSettings":
        environ = os.environ if environ is None else environ
        data: dict[str, str] = {}
        config_path = path or environ.get(_CONFIG_FILE_ENV)
        if config_path:
            data.update(read_properties(config_path))
        for name, value in environ.items():
            if name.startswith(_ENV_PREFIX) and len(name) > len(_ENV_PREFIX):
                data[_env_key_to_setting(name)] = value
        if overrides:
            data.update(overrides)
        return cls(data)

    def with_overrides(self, overrides: Mapping[str, str]) -> "AppSettings":
        merged = dict(self._data)
        merged.update(overrides)
        return AppSettings(merged)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def _value(self, key: str) -> str | None:
        value = self._data.get(key)
        if value is None:
            return None
        stripped = value.strip()
        return stripped if stripped else None

    def get(self, key: str, default: str | None = None) -> str | None:
        value = self._value(key)
        return value if value is not None else default

    def get_int(self, key: str, default: int = 0) -> int:
        value = self._value(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            self.warn(f"{key} expected integer but received {value!r}; falling back to {default}.")
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self._value(key)
        if value is None:
            return default
        lowered = value.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        self.warn(f"{key} expected boolean but received {value!r}; falling back to {default}.")
        return default

    def get_list(self, key: str, default: Iterable[str] = ()) -> list[str]:
        value = self._value(key)
        if value is None:
            return list(default)
        return [item.strip() for item in value.split(",") if item.strip()]

    def get_path(self, key: str, default: str | None = None) -> str | None:
        """Return a filesystem path with ``{user.home}``-style placeholders expanded."""
        value = self.get(key, default)
        if value is None:
            return None
        for placeholder, replacement in _path_placeholders().items():
            value = value.replace(placeholder, replacement)
        return str(Path(value).expanduser().absolute())

    def keys_with_prefix(self, prefix: str) -> list[str]:
        return [key for key in self._data if key.startswith(prefix)]

    def raw(self, key: str) -> str | None:
        return self._data.get(key)

    def as_dict(self) -> dict[str, str]:
        return dict(self._data)

    def __contains__(self, key: object) -> bool:
        return self._value(str(key)) is not None

    def __len__(self) -> int:
        return len(self._data)


def resolve_mode(settings: AppSettings) -> ModeInfo:
    raw_value = settings.get(_MODE_KEY, _DEFAULT_MODE) or _DEFAULT_MODE
    normalized = raw_value.strip().lower()
    normalized = _MODE_ALIASES.get(normalized, normalized)
    if normalized not in _VALID_MODES:
        raise RuntimeError(f"Invalid {_MODE_KEY}={raw_value!r}. Expected one of {sorted(_VALID_MODES)}.")
    return ModeInfo(name=normalized, source=_MODE_KEY, raw_value=raw_value)


def flask_config(settings: AppSettings) -> dict[str, object]:
    """Translate application settings into the Flask config keys appcore owns."""
    mode = resolve_mode(settings)
    return {
        "APPCORE_MODE": mode.name,
        "ENV": {"dev": "development", "test": "testing", "prod": "production"}[mode.name],
        "TESTING": mode.name == "test",
        "DEBUG": mode.name == "dev" and settings.get_bool("application.debug", False),
        "SECRET_KEY": settings.get("application.secret_key", "devkey-please-change-in-production"),
        "LOG_LEVEL": settings.get("logging.level", "INFO" if mode.name == "prod" else "DEBUG"),
        "LOG_REDACT_PII": settings.get_bool("logging.redact_pii", True),
        "APPCORE_SECRET_VALUES": secret_values(settings),
    }


def secret_values(settings: AppSettings) -> tuple[str, ...]:
    """Configured secrets that must never appear in log output."""
    keys = ["application.secret_key"]
    keys += [key for key in settings.keys_with_prefix("db.") if key.endswith(".password")]
    return tuple(value for value in (settings.get(key) for key in keys) if value)
