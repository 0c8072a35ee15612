from __future__ import annotations

import logging
from typing import Iterable

from ..meta.tags import socket_endpoint, tag_value
from ..interception.registry import original_class

logger = logging.getLogger(__name__)


class SocketEndpointRegistry:
    """Woven socket endpoint types, keyed by endpoint name, for the transport to look up."""

    def __init__(self, endpoints: Iterable[type] = ()):
        self._endpoints: dict[str, type] = {}
        for endpoint in endpoints:
            self.add(endpoint)

    def add(self, endpoint: type) -> None:
        target = original_class(endpoint)
        name = tag_value(target, socket_endpoint) or target.__name__
        if name in self._endpoints and self._endpoints[name] is not endpoint:
            raise ValueError(f"Socket endpoint {name!r} is registered twice")
        self._endpoints[name] = endpoint
        logger.debug("Socket endpoint %s -> %s", name, target.__qualname__)

    def get(self, name: str) -> type | None:
        return self._endpoints.get(name)

    def names(self) -> list[str]:
        return sorted(self._endpoints)

    def __len__(self) -> int:
        return len(self._endpoints)
