from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from werkzeug.exceptions import HTTPException

from ..errors import PersistenceUnavailableError, RequestValidationError

DEFAULT_LIMIT = 40
MAX_LIMIT = 1000


@dataclass
class Request:
    """Incoming call envelope: target model plus payload, criteria and paging."""

    model: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    records: list[dict[str, Any]] = field(default_factory=list)
    criteria: list[dict[str, Any]] = field(default_factory=list)
    fields: list[str] = field(default_factory=list)
    limit: int | None = None
    offset: int | None = None
    sort_by: list[str] = field(default_factory=list)
    bean_class: type | None = None

    @classmethod
    def from_json(cls, payload: Mapping[str, Any] | None, model: str | None = None) -> "Request":
        payload = dict(payload or {})

        def _list(key):
            value = payload.get(key) or []
            if not isinstance(value, list):
                raise RequestValidationError(f"{key} must be a list", {key: "expected a list"})
            return value

        data = payload.get("data") or {}
        if not isinstance(data, dict):
            raise RequestValidationError("data must be an object", {"data": "expected an object"})
        return cls(
            model=payload.get("model") or model,
            data=data,
            records=_list("records"),
            criteria=_list("criteria"),
            fields=[str(name) for name in _list("fields")],
            limit=payload.get("limit"),
            offset=payload.get("offset"),
            sort_by=[str(name) for name in _list("sortBy")],
        )


@dataclass
class Response:
    """Outgoing envelope; ``status`` uses HTTP status codes."""

    status: int = 200
    data: Any = None
    errors: dict[str, str] = field(default_factory=dict)
    total: int | None = None
    offset: int | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @classmethod
    def success(cls, data: Any = None, total: int | None = None, offset: int | None = None) -> "Response":
        return cls(status=200, data=data, total=total, offset=offset)

    @classmethod
    def fail(cls, message: str, status: int = 500, errors: Mapping[str, str] | None = None) -> "Response":
        return cls(status=status, message=message, errors=dict(errors or {}))

    @classmethod
    def from_exception(cls, exc: BaseException) -> "Response":
        if isinstance(exc, RequestValidationError):
            return cls.fail(str(exc), status=422, errors=exc.errors)
        if isinstance(exc, PersistenceUnavailableError):
            return cls.fail("Database temporarily unavailable", status=503)
        if isinstance(exc, PermissionError):
            return cls.fail(str(exc) or "Access denied", status=403)
        if isinstance(exc, HTTPException):
            return cls.fail(exc.description or exc.name, status=exc.code or 500)
        return cls.fail("Internal server error", status=500)

    @classmethod
    def unauthorized(cls, message: str = "Authentication required") -> "Response":
        return cls.fail(message, status=401)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"status": self.status, "success": self.ok}
        if self.data is not None:
            body["data"] = self.data
        if self.total is not None:
            body["total"] = self.total
        if self.offset is not None:
            body["offset"] = self.offset
        if self.message:
            body["message"] = self.message
        if self.errors:
            body["errors"] = self.errors
        return body
