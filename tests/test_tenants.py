import pytest
from flask_login import UserMixin

from appcore.extensions import db
from appcore.tenants.provider import TenantConnectionProvider
from appcore.tenants.resolver import TenantResolver
from appcore.tenants.session import TENANCY_EXTENSION
from appcore.config import AppSettings
from appcore.errors import TenantResolutionError
from appcore.persistence.service import PERSISTENCE_EXTENSION


TENANT_SETTINGS = {
    "tenants.enable": "true",
    "tenants.default": "default",
    "db.acme.url": "sqlite://",
}


class _TenantUser(UserMixin):
    def __init__(self, user_id, tenant_id):
        self.id = user_id
        self.tenant_id = tenant_id


def _users(user_id):
    return {"1": _TenantUser("1", "acme"), "2": _TenantUser("2", "globex")}.get(user_id)


@pytest.fixture
def tenant_app(make_app):
    return make_app(TENANT_SETTINGS, user_loader=_users)


def test_provider_lists_tenants_from_database_settings():
    provider = TenantConnectionProvider(
        AppSettings({"db.default.url": "sqlite://", "db.acme.url": "sqlite://", "db.cache.url": "redis://"})
    )

    assert provider.tenant_ids() == ["default", "acme"]
    assert provider.has_tenant("acme")
    assert not provider.has_tenant("globex")
    with pytest.raises(TenantResolutionError):
        provider.engine_for("missing")


def test_provider_reuses_engines_until_closed():
    provider = TenantConnectionProvider(AppSettings({"db.acme.url": "sqlite://"}))

    first = provider.engine_for("acme")
    assert provider.engine_for("acme") is first

    provider.close_all()
    assert provider.engine_for("acme") is not first


def test_unknown_tenant_is_rejected(tenant_app):
    response = tenant_app.test_client().get("/api/ping", headers={"X-Tenant-ID": "initech"})

    assert response.status_code == 404
    assert response.get_json() == {"error": "unknown_tenant", "tenant": "initech"}


def test_known_tenant_is_pinned_in_a_cookie(tenant_app):
    response = tenant_app.test_client().get("/api/ping", headers={"X-Tenant-ID": "acme"})

    assert response.status_code == 200
    cookies = response.headers.getlist("Set-Cookie")
    assert any(cookie.startswith("TENANTID=acme") and "HttpOnly" in cookie for cookie in cookies)


def test_session_binds_to_the_current_tenant(tenant_app):
    routing = tenant_app.extensions[TENANCY_EXTENSION]

    with tenant_app.test_request_context("/"):
        TenantResolver.set_current("acme")
        assert db.session.get_bind() is routing.provider.engine_for("acme")

        TenantResolver.set_current(None)
        assert db.session.get_bind() is routing.provider.engine_for("default")


def test_user_from_another_tenant_is_refused(tenant_app):
    client = tenant_app.test_client()
    with client.session_transaction() as sess:
        sess["_user_id"] = "2"

    response = client.get("/api/ping", headers={"X-Tenant-ID": "acme"})

    assert response.status_code == 403
    assert response.get_json() == {"error": "tenant_mismatch"}


def test_user_of_the_tenant_has_it_stored_in_session(tenant_app):
    client = tenant_app.test_client()
    with client.session_transaction() as sess:
        sess["_user_id"] = "1"

    response = client.get("/api/ping", headers={"X-Tenant-ID": "acme"})

    assert response.status_code == 200
    with client.session_transaction() as sess:
        assert sess["tenant_id"] == "acme"


def test_tenancy_disabled_leaves_requests_alone(client):
    response = client.get("/api/ping", headers={"X-Tenant-ID": "initech"})

    assert response.status_code == 200
    assert "TENANTID" not in response.headers.get("Set-Cookie", "")


def test_tenant_databases_serve_without_a_default_url(make_app):
    app = make_app({"db.default.url": "", "tenants.enable": "true", "db.t1.url": "sqlite://"})
    persistence = app.extensions[PERSISTENCE_EXTENSION]

    assert persistence.available
    assert persistence.url == "sqlite://"

    response = app.test_client().post(
        "/api/customers", json={"data": {"name": "Ada"}}, headers={"X-Tenant-ID": "t1"}
    )

    assert response.status_code == 200
    assert response.get_json()["data"] == {"id": 1, "name": "Ada"}
