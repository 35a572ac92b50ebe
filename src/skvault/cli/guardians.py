"""Guardian roster commands: add, list, root, leaf, proof.

These work on the off-core roster file only; nothing here touches a
vault. Publish the resulting root with ``skvault set-root``.
"""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.table import Table

from ..directory import GuardianRoster, guardian_leaf
from ._common import console, fail, fmt_duration


def _load(roster: str) -> GuardianRoster:
    try:
        return GuardianRoster.load(Path(roster))
    except (OSError, ValueError) as exc:
        fail(f"Cannot read roster: {exc}")


def register_guardian_commands(main: click.Group) -> None:
    """Register the guardians command group."""

    @main.group()
    def guardians():
        """Manage the off-core guardian roster.

        Build Merkle roots and proofs from a YAML list of
        (identity, delay) declarations.
        """

    @guardians.command("add")
    @click.argument("roster", type=click.Path())
    @click.argument("identity")
    @click.argument("delay")
    @click.option("--label", default="", help="Human-readable name.")
    def guardians_add(roster, identity, delay, label):
        """Declare IDENTITY with DELAY (e.g. 30d, 12h, 3600)."""
        path = Path(roster)
        book = _load(roster) if path.exists() else GuardianRoster()
        try:
            decl = book.add(identity, delay, label)
        except ValueError as exc:
            fail(f"Invalid guardian: {exc}")
        book.save(path)
        console.print(f"  [green]Added[/] {decl.identity} ({fmt_duration(decl.delay)})")
        console.print(f"  New root: {book.root()}")

    @guardians.command("list")
    @click.argument("roster", type=click.Path(exists=True))
    def guardians_list(roster):
        """Show every declared guardian."""
        book = _load(roster)
        if not book.guardians:
            console.print("\n  [dim]No guardians declared.[/]\n")
            return
        table = Table(title="Guardians")
        table.add_column("#", style="dim")
        table.add_column("Identity", style="cyan")
        table.add_column("Delay")
        table.add_column("Label")
        for index, decl in enumerate(book.guardians):
            table.add_row(str(index), decl.identity, fmt_duration(decl.delay), decl.label)
        console.print()
        console.print(table)
        console.print(f"  Root: {book.root()}\n")

    @guardians.command("root")
    @click.argument("roster", type=click.Path(exists=True))
    def guardians_root(roster):
        """Print the Merkle root of the roster."""
        book = _load(roster)
        try:
            click.echo(book.root())
        except ValueError as exc:
            fail(str(exc))

    @guardians.command("leaf")
    @click.argument("identity")
    @click.argument("delay", type=int)
    def guardians_leaf(identity, delay):
        """Print the leaf hash for IDENTITY with DELAY seconds."""
        try:
            click.echo(guardian_leaf(identity, delay))
        except ValueError as exc:
            fail(f"Invalid guardian: {exc}")

    @guardians.command("proof")
    @click.argument("roster", type=click.Path(exists=True))
    @click.argument("identity")
    @click.option("--delay", type=int, default=None, help="Pick the declaration with this delay.")
    def guardians_proof(roster, identity, delay):
        """Print the inclusion proof for IDENTITY as JSON."""
        book = _load(roster)
        try:
            decl, proof = book.proof_for(identity, delay)
        except (KeyError, ValueError) as exc:
            fail(f"No proof: {exc}")
        click.echo(
            json.dumps(
                {
                    "guardian": decl.identity,
                    "delay": decl.delay,
                    "siblings": proof.siblings,
                    "path": proof.path,
                    "root": book.root(),
                },
                indent=2,
            )
        )
