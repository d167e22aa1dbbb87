"""
Subcommands that drive the session lifecycle: status, play, restore, factory-reset.
"""

import sys
from datetime import datetime

import click

from oldtrails.cli.common import (
    echo_events,
    get_app_controller,
    initialize_or_exit,
    resolve_version,
)


@click.command("status")
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the detected folders, the backup and any unfinished session."""
    app_controller = get_app_controller(ctx)
    paths = app_controller.paths
    if paths is None:
        click.secho("Game folder: not found", fg="red")
        sys.exit(1)

    session_controller = app_controller.session_controller
    assert session_controller.flag is not None
    assert session_controller.backup_store is not None
    assert session_controller.archive is not None

    click.echo(f"Game folder:      {paths.install_dir}")
    click.echo(f"Save folder:      {paths.local_low_dir}")
    click.echo(f"Documents folder: {paths.documents_dir}")
    click.echo(f"Versions folder:  {paths.versions_root}")

    backup_store = session_controller.backup_store
    has_backup = backup_store.has_install_backup and backup_store.has_save_backup
    click.echo(f"Original backup:  {'present' if has_backup else 'missing'}")
    click.echo(
        f"Downloaded:       {len(session_controller.archive.installed_versions())} version(s)"
    )

    flag = session_controller.flag
    if flag.load() and flag.held_by_other_process():
        click.secho(
            f"{flag.version_name} is being played by another OldTrails process "
            f"(pid {flag.owner_pid}).",
            fg="yellow",
        )
    elif flag.is_set:
        assert flag.state is not None
        click.secho(
            f"Game folders modified by {flag.version_name or 'an unknown version'} "
            f"(last state: {flag.state.value}). Run 'oldtrails restore'.",
            fg="yellow",
        )
    else:
        click.secho("Game folders are in their original state.", fg="green")


@click.command("play")
@click.argument("version")
@click.option(
    "--quiet",
    is_flag=True,
    help="Suppress progress output (errors still shown).",
)
@click.pass_context
def play(ctx: click.Context, version: str, quiet: bool) -> None:
    """Play VERSION, then restore the original game once it is closed.

    The command keeps running until the game exits and its saves are stored.
    """
    game_version = resolve_version(version)
    app_controller = get_app_controller(ctx)
    echo_events(ctx, quiet)
    initialize_or_exit(app_controller)

    session_controller = app_controller.session_controller
    if session_controller.session is None:
        if not session_controller.play(game_version):
            sys.exit(1)
    else:
        click.echo(
            f"Resuming the session of {session_controller.session.version.name}", err=True
        )

    started = datetime.now()
    exit_code = app_controller.run_session()
    if exit_code == 0:
        minutes = (datetime.now() - started).total_seconds() / 60
        click.secho(
            f"✓ Session over after {minutes:.0f} minute(s), original game restored",
            fg="green",
            err=True,
        )
    sys.exit(exit_code)


@click.command("restore")
@click.pass_context
def restore(ctx: click.Context) -> None:
    """Put the original Steam game files and saves back."""
    app_controller = get_app_controller(ctx)
    echo_events(ctx)
    # Initializing already restores what a previous run left modified
    initialize_or_exit(app_controller)

    session_controller = app_controller.session_controller
    if session_controller.session is not None:
        click.secho(
            "Error: The game is still running, close it first.", fg="red", err=True
        )
        sys.exit(1)
    if not session_controller.restore():
        sys.exit(1)


@click.command("factory-reset")
@click.confirmation_option(
    prompt="Restore the original game and delete every downloaded version, save slot and backup?"
)
@click.pass_context
def factory_reset(ctx: click.Context) -> None:
    """Restore the original game, then delete everything OldTrails stored."""
    app_controller = get_app_controller(ctx)
    echo_events(ctx)
    initialize_or_exit(app_controller)

    if not app_controller.session_controller.factory_reset():
        sys.exit(1)
    click.secho("✓ Factory reset complete", fg="green", err=True)
