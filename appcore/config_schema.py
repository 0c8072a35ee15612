"""Canonical settings schema and diagnostics.

Synopsis:
Every supported dotted key is declared once in ``config_schema_parts/`` with
its type, default per mode and whether it is required. ``resolve_settings``
checks raw settings against those declarations and returns typed values plus
human-readable warnings; startup logs them and ``flask appcore check`` prints
them as a report.

Glossary:
- Field: Declaration of one setting key.
- Unit facet: ``db.<unit>.<facet>`` connection key of a persistence unit or tenant.
- Mode: ``dev``, ``test`` or ``prod`` (``application.mode``).
"""

from __future__ import annotations

import importlib.util
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

MASK = "********"


@dataclass(frozen=True)
class ConfigField:
    key: str
    cast: str
    default: Any
    description: str
    section: str
    required: bool = False
    required_in: tuple[str, ...] = ()
    recommended: str | None = None
    secret: bool = False
    note: str | None = None
    options: tuple[str, ...] = ()
    default_by_mode: dict[str, Any] | None = None

    def default_for_mode(self, mode: str) -> Any:
        return (self.default_by_mode or {}).get(mode, self.default)

    def is_required(self, mode: str) -> bool:
        return self.required or mode in self.required_in


@dataclass(frozen=True)
class ConfigSection:
    key: str
    title: str
    note: str | None
    fields: tuple[ConfigField, ...]


@dataclass(frozen=True)
class ResolvedField:
    field: ConfigField
    value: Any
    source: str
    present: bool
    required: bool


DEPRECATED_KEYS: dict[str, str] = {
    "tenants.enabled": "tenants.enable",
    "session.cookie_secure": "session.cookie.secure",
    "cors.allow.origin": "cors.allow_origin",
    "search.index.base": "sqlalchemy.search.default.index_base",
}
# ORM namespaces of other stacks; only ``sqlalchemy.*`` reaches the ORM
DEPRECATED_PREFIXES: dict[str, str] = {
    "hibernate.": "sqlalchemy.",
    "javax.persistence.": "sqlalchemy.",
}

UNIT_FACETS = ("url", "driver", "user", "password", "ddl", "datasource")
_UNIT_KEY = re.compile(r"^db\.(?P<unit>[^.]+)\.(?P<facet>.+)$")
_NON_UNIT_NAMESPACES = {"cache"}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


# --- Casts ---
# Each cast turns a non-blank raw string into (value, error); blanks never reach a cast.
def _cast_str(raw: str) -> tuple[Any, str | None]:
    return raw, None


def _cast_int(raw: str) -> tuple[Any, str | None]:
    try:
        return int(raw), None
    except ValueError:
        return None, "expected integer"


def _cast_bool(raw: str) -> tuple[Any, str | None]:
    lowered = raw.lower()
    if lowered in _TRUE:
        return True, None
    if lowered in _FALSE:
        return False, None
    return None, "expected boolean"


def _cast_list(raw: str) -> tuple[Any, str | None]:
    return [item.strip() for item in raw.split(",") if item.strip()], None


CASTS: dict[str, Callable[[str], tuple[Any, str | None]]] = {
    "str": _cast_str,
    "int": _cast_int,
    "bool": _cast_bool,
    "list": _cast_list,
}


def coerce(field: ConfigField, raw: str | None, default: Any) -> tuple[Any, str | None]:
    """Typed value for ``raw``, or ``default`` plus an error when it cannot be used."""
    text = (raw or "").strip()
    if not text:
        return default, None
    value, error = CASTS[field.cast](text)
    if error is None and field.options and str(value) not in field.options:
        error = f"expected one of {', '.join(field.options)}"
    if error:
        return default, error
    return value, None


def _unit_facet_warnings(raw_settings: Mapping[str, str]) -> list[str]:
    warnings = []
    for key in raw_settings:
        match = _UNIT_KEY.match(key)
        if match is None or match["unit"] in _NON_UNIT_NAMESPACES:
            continue
        if match["facet"] not in UNIT_FACETS:
            warnings.append(f"{key} is not a database setting; expected db.{match['unit']}.<{'|'.join(UNIT_FACETS)}>.")
    return warnings


def _deprecation_warnings(raw_settings: Mapping[str, str]) -> list[str]:
    warnings = [
        f"{key} is deprecated; use {replacement} instead."
        for key, replacement in DEPRECATED_KEYS.items()
        if (raw_settings.get(key) or "").strip()
    ]
    for key in raw_settings:
        for prefix, replacement in DEPRECATED_PREFIXES.items():
            if key.startswith(prefix):
                warnings.append(f"{key} is ignored; use the {replacement}* namespace instead.")
    return warnings


def resolve_settings(
    raw_settings: Mapping[str, str], mode: str
) -> tuple[dict[str, Any], dict[str, ResolvedField], list[str]]:
    """Typed values, per-key resolution details and warnings for ``mode``."""
    values: dict[str, Any] = {}
    resolved: dict[str, ResolvedField] = {}
    warnings: list[str] = []

    for field in CONFIG_FIELDS:
        raw = raw_settings.get(field.key)
        default = field.default_for_mode(mode)
        value, error = coerce(field, raw, default)
        supplied = bool((raw or "").strip())
        required = field.is_required(mode)
        if error:
            warnings.append(f"{field.key} {error}; falling back to {default!r}.")
        if required and not supplied:
            warnings.append(f"{field.key} is required in {mode} mode but missing.")

        values[field.key] = value
        resolved[field.key] = ResolvedField(
            field=field,
            value=value,
            source="settings" if supplied else "default",
            present=supplied or value not in (None, ""),
            required=required,
        )

    warnings.extend(_unit_facet_warnings(raw_settings))
    warnings.extend(_deprecation_warnings(raw_settings))
    return values, resolved, warnings


def iter_sections() -> Iterable[ConfigSection]:
    return CONFIG_SECTIONS


def build_report(raw_settings: Mapping[str, str], mode: str) -> list[dict[str, Any]]:
    """Rows per section for ``flask appcore check``; secret values are masked."""
    _, resolved, _ = resolve_settings(raw_settings, mode)
    report = []
    for section in CONFIG_SECTIONS:
        rows = []
        for field in section.fields:
            entry = resolved[field.key]
            rows.append(
                {
                    "key": field.key,
                    "present": entry.present,
                    "required": entry.required,
                    "value": MASK if field.secret and entry.present else entry.value,
                    "source": entry.source,
                    "description": field.description,
                    "recommended": field.recommended if mode == "prod" else None,
                }
            )
        report.append({"title": section.title, "note": section.note, "rows": rows})
    return report


# --- Schema parts ---
# Part modules are plain data and load without importing the rest of appcore.
_PARTS = ("core", "database", "cache", "tenancy", "search", "web", "logging")


def _load_part(name: str):
    path = Path(__file__).with_name("config_schema_parts") / f"{name}.py"
    spec = importlib.util.spec_from_file_location(f"appcore_config_schema_part_{name}", path)
    if spec is None or spec.loader is None:
        raise RuntimeError(f"Unable to load schema part {name}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _section_from(module) -> ConfigSection:
    meta = module.SECTION
    fields = []
    for declared in module.FIELDS:
        spec = dict(declared)
        spec["options"] = tuple(spec.get("options") or ())
        spec["required_in"] = tuple(spec.get("required_in") or ())
        fields.append(ConfigField(section=meta["key"], **spec))
    return ConfigSection(key=meta["key"], title=meta["title"], note=meta.get("note"), fields=tuple(fields))


CONFIG_SECTIONS: tuple[ConfigSection, ...] = tuple(_section_from(_load_part(name)) for name in _PARTS)
CONFIG_FIELDS: tuple[ConfigField, ...] = tuple(field for section in CONFIG_SECTIONS for field in section.fields)
