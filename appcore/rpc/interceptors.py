"""Interceptors attached to dispatched resource methods."""

from __future__ import annotations

import logging
from contextvars import ContextVar

from ..errors import RequestValidationError
from ..interception.registry import MethodInterceptor, MethodInvocation
from ..persistence.service import current_persistence
from .models import DEFAULT_LIMIT, MAX_LIMIT, Request, Response

logger = logging.getLogger(__name__)

_SHAPING = ContextVar("appcore_response_shaping", default=False)


class ResponseInterceptor(MethodInterceptor):
    """Turn exceptions into failure responses; the outermost call does the shaping."""

    def invoke(self, invocation: MethodInvocation):
        if _SHAPING.get():
            return invocation.proceed()
        token = _SHAPING.set(True)
        try:
            result = invocation.proceed()
        except Exception as exc:
            self._rollback()
            if isinstance(exc, RequestValidationError):
                logger.info("Rejected %s: %s", invocation.method_name, exc)
            else:
                logger.exception("Error in %s", invocation.method_name)
            return Response.from_exception(exc)
        finally:
            _SHAPING.reset(token)
        return self.shape(result)

    @staticmethod
    def shape(result) -> Response:
        if result is None:
            return Response.success()
        if not isinstance(result, Response):
            return Response.success(data=result)
        if isinstance(result.data, list) and result.total is None and result.ok:
            result.total = len(result.data)
        return result

    @staticmethod
    def _rollback() -> None:
        persistence = current_persistence()
        if persistence is None or not persistence.available:
            return
        try:
            persistence.db.session.rollback()
        except Exception as exc:
            logger.warning("Rollback after failed call did not complete: %s", exc)


class RequestFilter(MethodInterceptor):
    """Validate and normalize ``Request`` arguments before the method runs."""

    def invoke(self, invocation: MethodInvocation):
        for argument in invocation.arguments:
            if isinstance(argument, Request):
                self.prepare(argument)
        return invocation.proceed()

    def prepare(self, request: Request) -> Request:
        if request.model:
            request.bean_class = self._resolve_model(request.model)
        request.limit = self._paging("limit", request.limit, DEFAULT_LIMIT)
        request.offset = self._paging("offset", request.offset, 0)
        if request.limit > MAX_LIMIT:
            request.limit = MAX_LIMIT
        request.data = self._strip_internal(request.data)
        request.records = [self._strip_internal(record) for record in request.records if isinstance(record, dict)]
        return request

    @staticmethod
    def _resolve_model(model: str) -> type:
        persistence = current_persistence()
        if persistence is not None:
            entities = persistence.entities
        else:
            from ..persistence.scanner import EntityScanner

            entities = EntityScanner().find_entities()
        entity = entities.get(model)
        if entity is None:
            raise RequestValidationError(f"Unknown model: {model}", {"model": "unknown"})
        return entity

    @staticmethod
    def _paging(name: str, value, default: int) -> int:
        if value is None or value == "":
            return default
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise RequestValidationError(f"{name} must be an integer", {name: "not an integer"}) from None
        if number < 0:
            raise RequestValidationError(f"{name} must not be negative", {name: "negative"})
        if number == 0 and name == "limit":
            return default
        return number

    @staticmethod
    def _strip_internal(values: dict) -> dict:
        return {key: value for key, value in values.items() if not str(key).startswith("$")}
