"""
Subcommands that manage the downloaded versions: versions, download, uninstall.
"""

import sys

import click

from oldtrails.cli.common import (
    echo_events,
    get_app_controller,
    initialize_or_exit,
    resolve_version,
)
from oldtrails.models.game_version import GAME_VERSIONS


@click.command("versions")
@click.option(
    "--installed",
    is_flag=True,
    help="Only list the versions that are downloaded.",
)
@click.pass_context
def versions(ctx: click.Context, installed: bool) -> None:
    """List every known Trailmakers version, newest first.

    Downloaded versions are marked with an asterisk.
    """
    archive = get_app_controller(ctx).session_controller.archive
    downloaded = set(archive.installed_versions()) if archive is not None else set()

    for version in GAME_VERSIONS:
        is_downloaded = version in downloaded
        if installed and not is_downloaded:
            continue
        marker = "*" if is_downloaded else " "
        click.echo(f"{marker} {version.name:<42} {version.manifest_id}")


@click.command("download")
@click.argument("version")
@click.option(
    "--username",
    envvar="OLDTRAILS_STEAM_USERNAME",
    help="Steam account name. Defaults to steam_username from settings.json.",
)
@click.option(
    "--ask-password",
    is_flag=True,
    help="Prompt for the Steam password. Only needed the first time, "
    "DepotDownloader remembers the login afterwards.",
)
@click.option(
    "--quiet",
    is_flag=True,
    help="Suppress progress output (errors still shown).",
)
@click.pass_context
def download(
    ctx: click.Context,
    version: str,
    username: str | None,
    ask_password: bool,
    quiet: bool,
) -> None:
    """Download VERSION from Steam with DepotDownloader.

    VERSION is a version name, a unique prefix of one, or a manifest id.
    Steam Guard codes are asked for in this terminal.

    Examples:

    \b
      # First download, log in once
      oldtrails download "1.0 Release" --username me --ask-password

    \b
      # Later downloads reuse the remembered login
      oldtrails download 0.8.1
    """
    game_version = resolve_version(version)
    app_controller = get_app_controller(ctx)
    echo_events(ctx, quiet)

    if username:
        app_controller.settings.steam_username = username
    if not app_controller.settings.steam_username:
        click.secho("Error: A Steam username is required.", fg="red", err=True)
        click.echo("Pass --username or set steam_username in settings.json.", err=True)
        sys.exit(1)

    downloader = app_controller.make_downloader()
    if downloader is None:
        click.secho("Error: DepotDownloader was not found.", fg="red", err=True)
        click.echo(
            "Put it on PATH or set depot_downloader_path in settings.json.", err=True
        )
        sys.exit(1)

    password = None
    if ask_password:
        password = click.prompt("Steam password", hide_input=True)

    if not app_controller.session_controller.download(
        game_version, downloader, password
    ):
        sys.exit(1)
    click.secho(f"✓ {game_version.name} downloaded", fg="green", err=True)


@click.command("uninstall")
@click.argument("version")
@click.confirmation_option(prompt="Delete this version and its saves?")
@click.pass_context
def uninstall(ctx: click.Context, version: str) -> None:
    """Delete a downloaded VERSION together with its save data."""
    game_version = resolve_version(version)
    app_controller = get_app_controller(ctx)
    echo_events(ctx)
    initialize_or_exit(app_controller)

    if not app_controller.session_controller.uninstall(game_version):
        sys.exit(1)
