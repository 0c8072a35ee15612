"""Management commands for inspecting the composed application."""

import click
from flask import current_app
from flask.cli import AppGroup, with_appcontext

from .config_schema import build_report, resolve_settings
from .context import CONTEXT_EXTENSION

appcore_cli = AppGroup("appcore", help="Inspect the composed application.")


def _context():
    context = current_app.extensions.get(CONTEXT_EXTENSION)
    if context is None:
        raise click.ClickException("appcore is not started on this application")
    return context


@appcore_cli.command("config")
@with_appcontext
def show_config():
    """Print the composed persistence configuration (secrets masked)."""
    context = _context()
    for key, value in context.persistence_config.masked().items():
        click.echo(f"{key} = {value}")


@appcore_cli.command("filters")
@with_appcontext
def show_filters():
    """Print the request filter chain in execution order."""
    for line in _context().filter_chain.describe():
        click.echo(line)


@appcore_cli.command("interceptors")
@with_appcontext
def show_interceptors():
    """Print every woven method and the interceptors around it."""
    context = _context()
    lines = context.interceptors.describe()
    if not lines:
        click.echo("No intercepted methods.")
    for line in lines:
        click.echo(line)
    if context.deployment is not None:
        for line in context.deployment.describe():
            click.echo(f"route {line}")


@appcore_cli.command("check")
@click.option("--strict", is_flag=True, help="Exit non-zero when warnings are found.")
@with_appcontext
def check_settings(strict):
    """Print settings diagnostics for the current mode."""
    context = _context()
    raw = context.settings.as_dict()
    _, _, warnings = resolve_settings(raw, context.mode)
    for section in build_report(raw, context.mode):
        click.echo(f"[{section['title']}]")
        for row in section["rows"]:
            marker = "!" if row["required"] and not row["present"] else " "
            hint = f" [recommended: {row['recommended']}]" if row["recommended"] else ""
            click.echo(f" {marker} {row['key']} = {row['value']!r} ({row['source']}){hint}")
    for warning in warnings + context.settings.warnings:
        click.echo(f"warning: {warning}")
    if strict and (warnings or context.settings.warnings):
        raise SystemExit(1)


def register_commands(app):
    """Register CLI commands with the app"""
    app.cli.add_command(appcore_cli)
