"""Attach cross-cutting behavior to discovered methods at startup."""

from .matchers import Matcher, accepts, annotated_with, any_, returns, subclasses_of
from .registry import InterceptorRegistry, MethodInterceptor, MethodInvocation

__all__ = [
    "InterceptorRegistry",
    "Matcher",
    "MethodInterceptor",
    "MethodInvocation",
    "accepts",
    "annotated_with",
    "any_",
    "returns",
    "subclasses_of",
]
