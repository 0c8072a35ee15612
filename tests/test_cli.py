from appcore.persistence import keys


def test_config_command_masks_secrets(make_app):
    app = make_app({"db.default.url": "", "db.default.user": "app", "db.default.password": "hunter2"})

    result = app.test_cli_runner().invoke(args=["appcore", "config"])

    assert result.exit_code == 0
    assert f"{keys.PASSWORD} = ********" in result.output
    assert "hunter2" not in result.output
    assert f"{keys.USER} = app" in result.output
    assert keys.URL not in result.output


def test_filters_command_lists_chain_in_order(runner):
    result = runner.invoke(args=["appcore", "filters"])
    stages = [line.split()[0] for line in result.output.splitlines()]

    assert result.exit_code == 0
    assert stages == [
        "PROXY",
        "CORS",
        "TENANT_PRE",
        "PERSISTENCE",
        "APPLICATION",
        "AUTHENTICATION",
        "TENANT_POST",
        "AUXILIARY",
    ]


def test_interceptors_command_lists_woven_methods_and_routes(runner):
    result = runner.invoke(args=["appcore", "interceptors"])

    assert result.exit_code == 0
    assert "CrudResource.search: ResponseInterceptor, RequestFilter" in result.output
    assert "ChatEndpoint.on_message: ResponseInterceptor, WebSocketSecurityInterceptor" in result.output
    assert "/api/<model>/search" in result.output


def test_check_passes_for_complete_settings(runner):
    result = runner.invoke(args=["appcore", "check", "--strict"])

    assert result.exit_code == 0
    assert "[Application]" in result.output
    assert "'********'" in result.output


def test_check_strict_fails_on_warnings(make_app):
    app = make_app({"auth.disabled": "sometimes"})

    result = app.test_cli_runner().invoke(args=["appcore", "check", "--strict"])

    assert result.exit_code == 1
    assert "warning: auth.disabled expected boolean" in result.output
