import pytest
from flask import Flask

from appcore.config import AppSettings
from appcore.errors import FilterOrderError
from appcore.web.filters import REQUIRED_ORDER, Filter, FilterChain, FilterStage, bind, install_filter_chain
from appcore.web.pipeline import build_filter_chain


class _Recorder(Filter):
    def __init__(self, name, events, short_circuit=False):
        self.name = name
        self.events = events
        self.short_circuit = short_circuit

    def before(self):
        self.events.append(f"before:{self.name}")
        if self.short_circuit:
            return "stopped", 418
        return None

    def after(self, response):
        self.events.append(f"after:{self.name}")
        return response

    def teardown(self, exc):
        self.events.append(f"teardown:{self.name}")


class _NullPersistence:
    def begin_unit_of_work(self):
        return None


def _chain(events, short_circuit_at=None):
    return FilterChain(
        bind(stage, _Recorder(stage.name.lower(), events, short_circuit=stage is short_circuit_at))
        for stage in REQUIRED_ORDER
    )


def test_chain_rejects_wrong_order():
    events = []
    bindings = [bind(stage, _Recorder(stage.name, events)) for stage in REQUIRED_ORDER]
    bindings[3], bindings[4] = bindings[4], bindings[3]

    with pytest.raises(FilterOrderError, match="PERSISTENCE"):
        FilterChain(bindings)


def test_chain_rejects_missing_stage():
    events = []
    bindings = [bind(stage, _Recorder(stage.name, events)) for stage in REQUIRED_ORDER[:-1]]

    with pytest.raises(FilterOrderError):
        FilterChain(bindings)


def test_auxiliary_bindings_must_follow_main_chain():
    events = []
    bindings = [bind(FilterStage.AUXILIARY, _Recorder("aux", events), "/js/*")]
    bindings += [bind(stage, _Recorder(stage.name, events)) for stage in REQUIRED_ORDER]

    with pytest.raises(FilterOrderError, match="Auxiliary"):
        FilterChain(bindings)


def test_built_chain_opens_session_before_application_filter():
    chain = build_filter_chain(AppSettings({}), _NullPersistence())

    assert chain.position(FilterStage.PERSISTENCE) < chain.position(FilterStage.APPLICATION)
    assert chain.position(FilterStage.TENANT_PRE) < chain.position(FilterStage.PERSISTENCE)
    assert chain.position(FilterStage.AUTHENTICATION) < chain.position(FilterStage.TENANT_POST)
    assert [b.name for b in chain][:3] == ["proxy", "cors", "tenant-pre-session"]


def test_no_cache_binding_covers_scripts_and_static_assets():
    chain = build_filter_chain(AppSettings({}), _NullPersistence())

    names = lambda path: [b.name for b in chain.matching(path)]  # noqa: E731
    assert "no-cache" in names("/js/messages.js")
    assert "no-cache" in names("/css/app.css")
    assert "no-cache" not in names("/api/customers")
    assert len(names("/api/customers")) == len(REQUIRED_ORDER)


def test_installed_chain_runs_in_order_and_unwinds_in_reverse():
    events = []
    app = Flask(__name__)
    install_filter_chain(app, _chain(events))

    @app.route("/hello")
    def hello():
        events.append("view")
        return "hi"

    response = app.test_client().get("/hello")

    assert response.status_code == 200
    stages = [stage.name.lower() for stage in REQUIRED_ORDER]
    assert events[: len(stages)] == [f"before:{name}" for name in stages]
    assert events[len(stages)] == "view"
    assert events[len(stages) + 1 : 2 * len(stages) + 1] == [f"after:{name}" for name in reversed(stages)]


def test_short_circuit_only_unwinds_entered_filters():
    events = []
    app = Flask(__name__)
    install_filter_chain(app, _chain(events, short_circuit_at=FilterStage.PERSISTENCE))

    @app.route("/hello")
    def hello():
        events.append("view")
        return "hi"

    response = app.test_client().get("/hello")

    assert response.status_code == 418
    assert "view" not in events
    assert "before:application" not in events
    assert "after:application" not in events
    assert "teardown:persistence" in events
    assert events.index("after:persistence") < events.index("after:proxy")


def test_no_cache_headers_on_script_responses(client):
    response = client.get("/js/messages.js")

    assert response.status_code == 200
    assert response.headers["Cache-Control"] == "no-cache, no-store, must-revalidate"
    assert response.headers["Pragma"] == "no-cache"


def test_api_responses_are_cacheable(client):
    response = client.get("/api/ping")

    assert response.status_code == 200
    assert "Cache-Control" not in response.headers


def test_cors_preflight_is_answered(make_app):
    app = make_app({"cors.allow_origin": "https://ui.example.com", "cors.max_age": "60"})

    response = app.test_client().options(
        "/api/ping",
        headers={"Origin": "https://ui.example.com", "Access-Control-Request-Method": "GET"},
    )

    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == "https://ui.example.com"
    assert response.headers["Access-Control-Allow-Credentials"] == "true"
    assert response.headers["Access-Control-Max-Age"] == "60"


def test_cors_ignores_unknown_origins(make_app):
    app = make_app({"cors.allow_origin": "https://ui.example.com"})

    response = app.test_client().get("/api/ping", headers={"Origin": "https://evil.example.com"})

    assert response.status_code == 200
    assert "Access-Control-Allow-Origin" not in response.headers


def test_authentication_filter_blocks_anonymous_api_calls(make_app):
    app = make_app({"auth.disabled": "false"})
    client = app.test_client()

    assert client.get("/api/ping").status_code == 401
    assert client.get("/health").status_code == 200


def test_authentication_filter_admits_logged_in_users(make_app):
    from flask_login import UserMixin

    class _User(UserMixin):
        def __init__(self, user_id):
            self.id = user_id

    app = make_app({"auth.disabled": "false"}, user_loader=lambda user_id: _User(user_id))
    client = app.test_client()
    with client.session_transaction() as sess:
        sess["_user_id"] = "7"

    response = client.get("/api/ping")

    assert response.status_code == 200
    assert response.get_json() == {"pong": True}


def test_proxy_filter_honors_forwarded_headers(make_app):
    app = make_app({"proxy.enabled": "true"})

    @app.route("/whoami")
    def whoami():
        from flask import g

        return {"addr": g.client_addr, "scheme": g.client_scheme}

    response = app.test_client().get(
        "/whoami",
        headers={"X-Forwarded-For": "203.0.113.9", "X-Forwarded-Proto": "https"},
    )

    assert response.get_json() == {"addr": "203.0.113.9", "scheme": "https"}


def test_application_filter_sets_content_language(make_app):
    app = make_app({"application.locales": "en,fr"})

    response = app.test_client().get("/api/ping", headers={"Accept-Language": "fr"})

    assert response.headers["Content-Language"] == "fr"
