from __future__ import annotations

from flask_caching import Cache
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import MetaData

from .persistence.naming import ImplicitNamingStrategy
from .tenants.session import TenantRoutingSession

__all__ = ["db", "cache"]

db = SQLAlchemy(
    metadata=MetaData(naming_convention=ImplicitNamingStrategy.naming_convention()),
    session_options={"class_": TenantRoutingSession},
)
cache = Cache()
