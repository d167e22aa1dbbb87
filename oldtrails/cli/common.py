"""
Helpers shared by the CLI subcommands.
"""

import sys

import click

from oldtrails.controllers.app_controller import AppController
from oldtrails.models.game_version import GameVersion, get_version
from oldtrails.utils.event_bus import EventBus


def get_app_controller(ctx: click.Context) -> AppController:
    """
    The AppController for this invocation, created on first use.

    A controller placed in ctx.obj["app_controller"] beforehand is used as is.
    """
    obj = ctx.ensure_object(dict)
    if obj.get("app_controller") is None:
        obj["app_controller"] = AppController()
    return obj["app_controller"]


def resolve_version(query: str) -> GameVersion:
    version = get_version(query)
    if version is None:
        click.secho(f"Error: Unknown or ambiguous version: {query}", fg="red", err=True)
        click.echo("Run 'oldtrails versions' to list every version.", err=True)
        sys.exit(1)
    return version


def echo_events(ctx: click.Context, quiet: bool = False) -> None:
    """
    Print status messages and errors from the event bus for as long as
    the command runs.
    """

    def on_status(message: str) -> None:
        if not quiet:
            click.echo(message, err=True)

    def on_error(message: str) -> None:
        click.secho(f"Error: {message}", fg="red", err=True)

    event_bus = EventBus()
    event_bus.status_message.connect(on_status)
    event_bus.session_error.connect(on_error)

    def disconnect() -> None:
        event_bus.status_message.disconnect(on_status)
        event_bus.session_error.disconnect(on_error)

    ctx.call_on_close(disconnect)


def initialize_or_exit(app_controller: AppController) -> None:
    if not app_controller.session_controller.initialize():
        sys.exit(1)
