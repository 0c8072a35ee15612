"""Structural matchers for classes and methods.

Matchers compose with ``&``, ``|`` and ``~``. Type matchers receive a class;
method matchers receive the plain function as declared on the class.
"""

from __future__ import annotations

import inspect
import types
import typing
from typing import Any, Callable

from ..meta.tags import has_tag


class Matcher:
    def __init__(self, predicate: Callable[[Any], bool], description: str):
        self._predicate = predicate
        self.description = description

    def matches(self, target: Any) -> bool:
        return bool(self._predicate(target))

    def __call__(self, target: Any) -> bool:
        return self.matches(target)

    def __and__(self, other: "Matcher") -> "Matcher":
        return Matcher(lambda t: self.matches(t) and other.matches(t), f"({self.description} & {other.description})")

    def __or__(self, other: "Matcher") -> "Matcher":
        return Matcher(lambda t: self.matches(t) or other.matches(t), f"({self.description} | {other.description})")

    def __invert__(self) -> "Matcher":
        return Matcher(lambda t: not self.matches(t), f"~{self.description}")

    def __repr__(self) -> str:
        return f"<Matcher {self.description}>"


def type_hints(func) -> dict[str, Any]:
    try:
        return typing.get_type_hints(func)
    except (NameError, TypeError):
        # unresolvable forward references: fall back to raw annotations that are classes
        return {name: hint for name, hint in getattr(func, "__annotations__", {}).items() if inspect.isclass(hint)}


def _is_subclass(candidate: Any, base: type) -> bool:
    return inspect.isclass(candidate) and issubclass(candidate, base)


def any_() -> Matcher:
    return Matcher(lambda _target: True, "any")


def annotated_with(tag) -> Matcher:
    name = getattr(tag, "tag", tag)
    return Matcher(lambda cls: has_tag(cls, name), f"annotated_with({name})")


def subclasses_of(base: type) -> Matcher:
    return Matcher(lambda cls: _is_subclass(cls, base), f"subclasses_of({base.__name__})")


def _union_members(hint: Any) -> tuple:
    if typing.get_origin(hint) in (typing.Union, types.UnionType):
        return tuple(arg for arg in typing.get_args(hint) if arg is not type(None))
    return (hint,)


def returns(type_matcher: Matcher) -> Matcher:
    """Match methods whose return annotation, or any member of an optional or union return, matches."""

    def _predicate(func) -> bool:
        hint = type_hints(func).get("return")
        if hint is None:
            return False
        return any(type_matcher.matches(member) for member in _union_members(hint))

    return Matcher(_predicate, f"returns({type_matcher.description})")


def accepts(base: type) -> Matcher:
    """Match methods with at least one parameter annotated as ``base`` or a subclass."""

    def _predicate(func) -> bool:
        hints = type_hints(func)
        hints.pop("return", None)
        return any(_is_subclass(hint, base) for hint in hints.values())

    return Matcher(_predicate, f"accepts({base.__name__})")
