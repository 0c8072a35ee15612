"""Error taxonomy for the composition engine.

Synopsis:
Configuration-derivation failures are recoverable and swallowed where they
occur. Composition invariant violations abort startup. Request-level failures
are reported to callers as structured responses.

Glossary:
- Derivation: Turning raw settings into persistence properties.
- Invariant: A rule the composed configuration must satisfy before serving.
"""

from __future__ import annotations


class AppCoreError(Exception):
    """Base class for every error raised by appcore."""


class ConfigurationError(AppCoreError):
    """A setting could not be turned into a configuration value."""


class CompositionError(AppCoreError):
    """The composed object graph violates an invariant; startup must abort."""


class FilterOrderError(CompositionError):
    """The request filter chain is not in the required order."""


class TenantResolutionError(AppCoreError):
    """A tenant identifier does not map to a configured database."""


class RequestValidationError(AppCoreError):
    """A request object failed validation before reaching its endpoint."""

    def __init__(self, message: str, errors: dict[str, str] | None = None):
        super().__init__(message)
        self.errors = dict(errors or {})


class PersistenceUnavailableError(AppCoreError):
    """No database connection could be opened for the current request."""
