"""
Main CLI entry point for OldTrails.

This module defines the Click command group and registers all subcommands.
"""

import click

from oldtrails.cli.session_commands import factory_reset, play, restore, status
from oldtrails.cli.version_commands import download, uninstall, versions
from oldtrails.utils.app_info import AppInfo


@click.group()
@click.version_option(version=AppInfo().app_version, prog_name="OldTrails")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """OldTrails - play old Trailmakers versions through your Steam install

    Downloads historical releases, swaps one into the Steam game folder for a
    session, and puts the original game and saves back when it exits.
    """
    ctx.ensure_object(dict)


# Register subcommands
cli.add_command(status)
cli.add_command(versions)
cli.add_command(download)
cli.add_command(play)
cli.add_command(uninstall)
cli.add_command(factory_reset)
cli.add_command(restore)


if __name__ == "__main__":
    cli()
