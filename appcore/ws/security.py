from __future__ import annotations

import logging

from flask import has_request_context
from flask_login import current_user

from ..interception.registry import MethodInterceptor, MethodInvocation
from ..rpc.models import Response

logger = logging.getLogger(__name__)


def _authenticated() -> bool:
    if not has_request_context():
        return False
    return bool(getattr(current_user, "is_authenticated", False))


class WebSocketSecurityInterceptor(MethodInterceptor):
    """Refuse socket calls from anonymous users before the endpoint runs."""

    def invoke(self, invocation: MethodInvocation):
        if not _authenticated():
            logger.info("Unauthenticated socket call to %s refused", invocation.method_name)
            return Response.unauthorized()
        return invocation.proceed()
