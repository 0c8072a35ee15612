"""Dispatch deployment.

Synopsis:
Publishes the ``@route`` methods of woven ``@path`` resources as Flask URL
rules. Every request gets a fresh resource instance whose constructor
parameters are filled by name from the deployment's dependencies. ``Request``
parameters are built from the JSON body and ``Response`` results are
rendered as JSON. A stopped deployment keeps its rules but answers 503.

Glossary:
- Resource: Class tagged with ``@path`` whose methods handle requests.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Iterable, Mapping

from flask import Flask, jsonify, request

from .errors import RequestValidationError
from .interception.matchers import type_hints
from .interception.registry import original_class
from .meta.tags import path, routes_of, tag_value
from .rpc.models import Request, Response

logger = logging.getLogger(__name__)

ENDPOINT_PREFIX = "appcore_dispatch"


def inject_dependencies(factory: Callable, dependencies: Mapping[str, object]) -> dict[str, object]:
    """Pick the dependencies ``factory`` declares by parameter name."""
    try:
        params = inspect.signature(factory).parameters
    except (TypeError, ValueError):
        return {}
    return {name: dependency for name, dependency in dependencies.items() if name in params}


def render(result: Any):
    if isinstance(result, Response):
        return jsonify(result.to_dict()), result.status
    if result is None:
        return "", 204
    if isinstance(result, (dict, list)):
        return jsonify(result)
    return result


class DispatchDeployment:
    def __init__(self, app: Flask, resources: Iterable[type], dependencies: Mapping[str, object] | None = None):
        self.app = app
        self.resources = list(resources)
        self.dependencies = dict(dependencies or {})
        self.active = False
        self.rules: list[tuple[str, tuple[str, ...], str]] = []

    def instantiate(self, resource: type):
        return resource(**inject_dependencies(resource, self.dependencies))

    def _arguments(self, func: Callable, path_args: Mapping[str, Any]) -> dict[str, Any]:
        hints = type_hints(func)
        arguments: dict[str, Any] = {}
        for index, (name, param) in enumerate(inspect.signature(func).parameters.items()):
            if index == 0 or param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            hint = hints.get(name)
            if name in path_args:
                arguments[name] = path_args[name]
            elif inspect.isclass(hint) and issubclass(hint, Request):
                payload = request.get_json(silent=True) if request.is_json else None
                if payload is not None and not isinstance(payload, dict):
                    raise RequestValidationError("request body must be a JSON object")
                arguments[name] = hint.from_json(payload, model=path_args.get("model"))
            elif name in request.args:
                arguments[name] = request.args[name]
            elif name in self.dependencies:
                arguments[name] = self.dependencies[name]
        return arguments

    def _view(self, resource: type, method_name: str, func: Callable):
        def view(**path_args):
            if not self.active:
                return jsonify({"error": "service_unavailable", "message": "Dispatch is stopped"}), 503
            try:
                arguments = self._arguments(func, path_args)
            except RequestValidationError as exc:
                return render(Response.from_exception(exc))
            instance = self.instantiate(resource)
            try:
                result = getattr(instance, method_name)(**arguments)
            except RequestValidationError as exc:
                # methods without a Response return type are not wrapped by ResponseInterceptor
                logger.info("Rejected %s.%s: %s", resource.__name__, method_name, exc)
                return render(Response.from_exception(exc))
            return render(result)

        return view

    def start(self) -> "DispatchDeployment":
        if self.active:
            return self
        if not self.rules:
            for resource in self.resources:
                self._register(resource)
        self.active = True
        logger.info("Dispatch started with %d routes from %d resources", len(self.rules), len(self.resources))
        return self

    def _register(self, resource: type) -> None:
        target = original_class(resource)
        prefix = tag_value(target, path, "")
        for name in dir(resource):
            if name.startswith("_"):
                continue
            func = inspect.getattr_static(resource, name)
            if not inspect.isfunction(func):
                continue
            # the woven wrapper keeps the original's route metadata and signature
            original = inspect.unwrap(func)
            for rule, methods in routes_of(func):
                full_rule = (prefix + ("/" + rule.lstrip("/") if rule else "")) or "/"
                endpoint = f"{ENDPOINT_PREFIX}.{target.__module__}.{target.__qualname__}.{name}.{len(self.rules)}"
                self.app.add_url_rule(
                    full_rule,
                    endpoint=endpoint,
                    view_func=self._view(resource, name, original),
                    methods=list(methods),
                )
                self.rules.append((full_rule, methods, endpoint))

    def stop(self) -> None:
        self.active = False
        logger.info("Dispatch stopped")

    def describe(self) -> list[str]:
        return [f"{','.join(methods):<12} {rule}" for rule, methods, _endpoint in self.rules]
