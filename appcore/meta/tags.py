"""Class and method tags read by the scanner and the interception registry.

Tags live on the class that declares them (``__appcore_tags__`` in the
class's own ``__dict__``); subclasses do not inherit them. Woven subclasses
copy their target's tags.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable

TAGS_ATTR = "__appcore_tags__"
ROUTES_ATTR = "__appcore_routes__"


def tags_of(cls: type) -> dict[str, Any]:
    return dict(cls.__dict__.get(TAGS_ATTR, {}))


def has_tag(cls: type, tag) -> bool:
    name = getattr(tag, "tag", tag)
    return isinstance(cls, type) and name in cls.__dict__.get(TAGS_ATTR, {})


def tag_value(cls: type, tag, default=None):
    name = getattr(tag, "tag", tag)
    return cls.__dict__.get(TAGS_ATTR, {}).get(name, default)


def _add_tag(cls: type, name: str, value: Any) -> type:
    tags = dict(cls.__dict__.get(TAGS_ATTR, {}))
    tags[name] = value
    setattr(cls, TAGS_ATTR, tags)
    return cls


def path(prefix: str = "") -> Callable[[type], type]:
    """Mark a class as a dispatch resource mounted under ``prefix``."""
    normalized = "/" + prefix.strip("/") if prefix.strip("/") else ""

    def decorator(cls: type) -> type:
        return _add_tag(cls, path.tag, normalized)

    return decorator


path.tag = "path"


def provider(cls: type) -> type:
    """Mark a class as a dispatch provider (serializer, exception mapper...)."""
    return _add_tag(cls, provider.tag, True)


provider.tag = "provider"


def websocket_security(cls: type) -> type:
    """Require an authenticated user for every method of a socket endpoint."""
    return _add_tag(cls, websocket_security.tag, True)


websocket_security.tag = "websocket_security"


def socket_endpoint(name: str) -> Callable[[type], type]:
    def decorator(cls: type) -> type:
        return _add_tag(cls, socket_endpoint.tag, name)

    return decorator


socket_endpoint.tag = "socket_endpoint"


def route(rule: str = "", methods: Iterable[str] = ("GET",)):
    """Expose a resource method at ``<path prefix><rule>``. Stackable."""

    def decorator(func):
        routes = list(getattr(func, ROUTES_ATTR, ()))
        routes.append((rule, tuple(method.upper() for method in methods)))
        setattr(func, ROUTES_ATTR, routes)
        return func

    return decorator


def routes_of(func) -> list[tuple[str, tuple[str, ...]]]:
    return list(getattr(func, ROUTES_ATTR, ()))
