from __future__ import annotations

from sqlalchemy.engine import URL, make_url

from ..errors import ConfigurationError

_LEGACY_SCHEMES = {"postgres": "postgresql"}


class CustomDialectResolver:
    """Combine url, driver and credential settings into a SQLAlchemy URL."""

    def normalize(self, url: str) -> str:
        scheme, sep, rest = url.partition("://")
        if sep and scheme in _LEGACY_SCHEMES:
            return f"{_LEGACY_SCHEMES[scheme]}://{rest}"
        return url

    def resolve(
        self,
        url: str,
        driver: str | None = None,
        username: str | None = None,
        password: str | None = None,
    ) -> URL:
        try:
            resolved = make_url(self.normalize(url.strip()))
        except Exception as exc:
            raise ConfigurationError(f"Invalid database url: {exc}") from exc

        if driver and "+" not in resolved.drivername:
            resolved = resolved.set(drivername=f"{resolved.drivername}+{driver}")
        if username:
            resolved = resolved.set(username=username)
        if password:
            resolved = resolved.set(password=password)
        return resolved

    def backend(self, url: URL) -> str:
        return url.get_backend_name()
