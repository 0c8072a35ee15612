from __future__ import annotations

from sqlalchemy import inspect as sa_inspect
from sqlalchemy import select

from appcore.meta.tags import path, provider, route, socket_endpoint, websocket_security
from appcore.rpc.models import Request, Response

from .models import Customer


def _as_dict(row) -> dict:
    return {attr.key: getattr(row, attr.key) for attr in sa_inspect(row).mapper.column_attrs}


@path("/api")
class CrudResource:
    def __init__(self, persistence):
        self.persistence = persistence

    @route("/<model>/search", methods=("POST",))
    def search(self, model: str, request: Request) -> Response:
        session = self.persistence.session
        stmt = select(request.bean_class).offset(request.offset).limit(request.limit)
        rows = [_as_dict(row) for row in session.scalars(stmt)]
        return Response.success(data=rows, offset=request.offset)

    @route("/customers", methods=("POST",))
    def create_customer(self, request: Request) -> Response:
        customer = Customer(**request.data)
        session = self.persistence.session
        session.add(customer)
        session.commit()
        return Response.success(data={"id": customer.id, "name": customer.name})

    @route("/customers/page", methods=("POST",))
    def page(self, request: Request) -> dict:
        return {"limit": request.limit, "offset": request.offset}

    @route("/boom")
    def boom(self) -> Response:
        raise RuntimeError("boom")

    @route("/ping")
    def ping(self) -> dict:
        return {"pong": True}


@provider
class CustomerSerializer:
    def serialize(self, customer: Customer) -> Response:
        return Response.success(data={"id": customer.id, "name": customer.name})


@websocket_security
@socket_endpoint("chat")
class ChatEndpoint:
    def on_message(self, text: str) -> Response:
        return Response.success(data=text.upper())


SAMPLE_TYPES = (CrudResource, CustomerSerializer, ChatEndpoint)
