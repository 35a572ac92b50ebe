"""
SKVault CLI — drive a vault deployment from the command line.

Each group lives in its own module and is registered on the main Click
group here.

Entry point: skvault.cli:main
"""

from __future__ import annotations

import logging

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="skvault")
@click.option("--verbose", "-v", is_flag=True, help="Log vault activity to stderr.")
def main(verbose):
    """SKVault — self-custody with guardian recovery.

    Your keys. Your guardians. Your timetable.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")


# ---------------------------------------------------------------------------
# Register all command groups/commands from modular files
# ---------------------------------------------------------------------------

from .vault_cmd import register_vault_commands
from .assets import register_asset_commands
from .guardians import register_guardian_commands

register_vault_commands(main)
register_asset_commands(main)
register_guardian_commands(main)
