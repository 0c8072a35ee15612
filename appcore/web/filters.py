"""Ordered request filter chain.

Synopsis:
Defines the filter contract, the fixed stage order every request passes
through, and the installer that runs the chain inside Flask's request hooks.

Glossary:
- Stage: Position of a filter in the chain; main stages have a fixed order.
- Auxiliary binding: Filter outside the ordering requirement (e.g. no-cache).
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Iterable, Iterator

from flask import Flask, Response, g, request

from ..errors import FilterOrderError

logger = logging.getLogger(__name__)

_ENTERED_ATTR = "_appcore_entered_filters"


class FilterStage(enum.IntEnum):
    PROXY = 10
    CORS = 20
    TENANT_PRE = 30
    PERSISTENCE = 40
    APPLICATION = 50
    AUTHENTICATION = 60
    TENANT_POST = 70
    AUXILIARY = 100


REQUIRED_ORDER = (
    FilterStage.PROXY,
    FilterStage.CORS,
    FilterStage.TENANT_PRE,
    FilterStage.PERSISTENCE,
    FilterStage.APPLICATION,
    FilterStage.AUTHENTICATION,
    FilterStage.TENANT_POST,
)


# --- Filter ---
# Purpose: Base contract for one request-processing stage.
class Filter:
    """A request stage. ``before`` may short-circuit by returning a response."""

    name = "filter"

    def install(self, app: Flask) -> None:
        """Hook for filters that need WSGI-level wiring."""

    def before(self):
        return None

    def after(self, response: Response) -> Response:
        return response

    def teardown(self, exc: BaseException | None) -> None:
        pass


# --- FilterBinding ---
# Purpose: Attach a filter to URL globs at a given stage.
@dataclass(frozen=True)
class FilterBinding:
    patterns: tuple[str, ...]
    stage: FilterStage
    filter: Filter

    def matches(self, path: str) -> bool:
        return any(pattern == "*" or fnmatchcase(path, pattern) for pattern in self.patterns)

    @property
    def name(self) -> str:
        return self.filter.name


def bind(stage: FilterStage, filter_: Filter, *patterns: str) -> FilterBinding:
    return FilterBinding(patterns=tuple(patterns or ("*",)), stage=stage, filter=filter_)


# --- FilterChain ---
# Purpose: Immutable, order-checked sequence of filter bindings.
class FilterChain:
    def __init__(self, bindings: Iterable[FilterBinding]):
        self._bindings = tuple(bindings)
        self._check_order()

    def _check_order(self) -> None:
        stages = tuple(b.stage for b in self._bindings if b.stage is not FilterStage.AUXILIARY)
        if stages != REQUIRED_ORDER:
            expected = " -> ".join(stage.name for stage in REQUIRED_ORDER)
            actual = " -> ".join(stage.name for stage in stages) or "<empty>"
            raise FilterOrderError(f"Filter chain must be ordered {expected}; got {actual}")
        seen_auxiliary = False
        for binding in self._bindings:
            if binding.stage is FilterStage.AUXILIARY:
                seen_auxiliary = True
            elif seen_auxiliary:
                raise FilterOrderError("Auxiliary filters must follow the main chain")

    def __iter__(self) -> Iterator[FilterBinding]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    @property
    def bindings(self) -> tuple[FilterBinding, ...]:
        return self._bindings

    def position(self, stage: FilterStage) -> int:
        for index, binding in enumerate(self._bindings):
            if binding.stage is stage:
                return index
        raise KeyError(stage)

    def matching(self, path: str) -> list[FilterBinding]:
        return [binding for binding in self._bindings if binding.matches(path)]

    def describe(self) -> list[str]:
        return [f"{b.stage.name:<14} {','.join(b.patterns):<20} {b.name}" for b in self._bindings]


# --- Install filter chain ---
# Purpose: Run the chain from Flask's before/after/teardown request hooks.
def install_filter_chain(app: Flask, chain: FilterChain) -> None:
    for binding in chain:
        binding.filter.install(app)

    @app.before_request
    def _run_filters():
        entered: list[Filter] = []
        setattr(g, _ENTERED_ATTR, entered)
        for binding in chain.matching(request.path):
            entered.append(binding.filter)
            result = binding.filter.before()
            if result is not None:
                logger.debug("Filter %s short-circuited %s", binding.name, request.path)
                return result
        return None

    @app.after_request
    def _unwind_filters(response):
        for filter_ in reversed(getattr(g, _ENTERED_ATTR, ())):
            response = filter_.after(response)
        return response

    @app.teardown_request
    def _teardown_filters(exc):
        for filter_ in reversed(getattr(g, _ENTERED_ATTR, ())):
            try:
                filter_.teardown(exc)
            except Exception as teardown_exc:
                logger.warning("Filter %s teardown failed: %s", filter_.name, teardown_exc)
