"""Method interception registry.

Synopsis:
Rules pair a type matcher and a method matcher with one or more
interceptors. At startup every discovered class is woven: a subclass is
built whose public methods run the matching interceptors, in binding order,
around the original method. The registry is frozen once weaving starts.

Glossary:
- Weaving: Building the intercepting subclass for one target class.
- Invocation: One call through the interceptor chain to the target method.
"""

from __future__ import annotations

import functools
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from ..errors import CompositionError
from ..meta.tags import TAGS_ATTR
from .matchers import Matcher

logger = logging.getLogger(__name__)

WOVEN_ATTR = "__appcore_woven__"
TARGET_ATTR = "__appcore_target__"


class MethodInterceptor:
    """Behavior wrapped around a matched method; call ``invocation.proceed()`` to continue."""

    def invoke(self, invocation: "MethodInvocation") -> Any:
        return invocation.proceed()

    @property
    def name(self) -> str:
        return type(self).__name__


class MethodInvocation:
    def __init__(self, target: Any, method: Callable, args: tuple, kwargs: dict, interceptors: tuple):
        self.target = target
        self.method = method
        self.args = args
        self.kwargs = kwargs
        self._interceptors = interceptors
        self._index = 0

    @property
    def arguments(self) -> list[Any]:
        return list(self.args) + list(self.kwargs.values())

    @property
    def method_name(self) -> str:
        return self.method.__name__

    def proceed(self) -> Any:
        if self._index < len(self._interceptors):
            interceptor = self._interceptors[self._index]
            self._index += 1
            try:
                return interceptor.invoke(self)
            finally:
                self._index -= 1
        return self.method(self.target, *self.args, **self.kwargs)


@dataclass(frozen=True)
class InterceptionRule:
    type_matcher: Matcher
    method_matcher: Matcher
    interceptors: tuple

    def applies_to(self, cls: type, func: Callable) -> bool:
        return self.type_matcher.matches(cls) and self.method_matcher.matches(func)


def _interceptable_methods(cls: type) -> dict[str, Callable]:
    methods: dict[str, Callable] = {}
    for name in dir(cls):
        if name.startswith("_"):
            continue
        raw = inspect.getattr_static(cls, name)
        if inspect.isfunction(raw):
            methods[name] = raw
    return methods


class InterceptorRegistry:
    def __init__(self):
        self._rules: list[InterceptionRule] = []
        self._woven: dict[type, type] = {}
        self.frozen = False

    def bind(self, type_matcher: Matcher, method_matcher: Matcher, *interceptors: MethodInterceptor) -> None:
        if self.frozen:
            raise CompositionError("Interceptor bindings are frozen after startup")
        if not interceptors:
            raise ValueError("bind() needs at least one interceptor")
        self._rules.append(InterceptionRule(type_matcher, method_matcher, tuple(interceptors)))

    @property
    def rules(self) -> tuple[InterceptionRule, ...]:
        return tuple(self._rules)

    def freeze(self) -> None:
        self.frozen = True

    def interceptors_for(self, cls: type, func: Callable) -> tuple:
        chain: list = []
        for rule in self._rules:
            if rule.applies_to(cls, func):
                chain.extend(rule.interceptors)
        return tuple(chain)

    def enhance(self, cls: type) -> type:
        """Return ``cls`` woven with its interceptors, or ``cls`` itself when none match."""
        self.frozen = True
        if cls in self._woven:
            return self._woven[cls]

        namespace: dict[str, Any] = {}
        woven: dict[str, tuple[str, ...]] = {}
        for name, func in _interceptable_methods(cls).items():
            chain = self.interceptors_for(cls, func)
            if chain:
                namespace[name] = _wrap(func, chain)
                woven[name] = tuple(interceptor.name for interceptor in chain)

        if not woven:
            self._woven[cls] = cls
            return cls

        namespace.update(
            {
                "__module__": cls.__module__,
                "__qualname__": cls.__qualname__,
                "__doc__": cls.__doc__,
                WOVEN_ATTR: woven,
                TARGET_ATTR: cls,
                TAGS_ATTR: dict(cls.__dict__.get(TAGS_ATTR, {})),
            }
        )
        enhanced = type(cls.__name__, (cls,), namespace)
        self._woven[cls] = enhanced
        logger.debug("Woven %s.%s: %s", cls.__module__, cls.__qualname__, woven)
        return enhanced

    def enhance_all(self, types: Iterable[type]) -> list[type]:
        return [self.enhance(cls) for cls in types]

    def describe(self) -> list[str]:
        lines = []
        for enhanced in self._woven.values():
            for method, names in sorted(getattr(enhanced, WOVEN_ATTR, {}).items()):
                lines.append(f"{enhanced.__module__}.{enhanced.__qualname__}.{method}: {', '.join(names)}")
        return sorted(lines)


def _wrap(func: Callable, chain: tuple) -> Callable:
    @functools.wraps(func)
    def intercepted(self, *args, **kwargs):
        return MethodInvocation(self, func, args, kwargs, chain).proceed()

    return intercepted


def original_class(cls: type) -> type:
    return cls.__dict__.get(TARGET_ATTR, cls)


def woven_methods(cls: type) -> dict[str, tuple[str, ...]]:
    return dict(cls.__dict__.get(WOVEN_ATTR, {}))
