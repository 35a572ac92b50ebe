"""Vault lifecycle commands: init, status, ping, transfer-ownership, set-root, recover, events."""

from __future__ import annotations

import json
from pathlib import Path

import click
from rich.table import Table

from ..config import VaultConfig, resolve_home, save_config
from ..directory import GuardianRoster
from ..errors import VaultError
from ..models import EventKind, MerkleProof
from ..store import VaultStore
from ._common import (
    apply_log_level,
    at_option,
    caller_option,
    clock_for,
    console,
    fail,
    fmt_duration,
    fmt_time,
    home_option,
    open_store,
    resolve_caller,
    vault_call,
)


def _root_from(root: str | None, roster: str | None) -> str:
    if bool(root) == bool(roster):
        fail("Give exactly one of ROOT or --roster.")
    if roster:
        try:
            return GuardianRoster.load(Path(roster)).root()
        except (OSError, ValueError) as exc:
            fail(f"Cannot read roster: {exc}")
    return root


def register_vault_commands(main: click.Group) -> None:
    """Register vault lifecycle commands."""

    @main.command("init")
    @click.argument("owner")
    @click.argument("root", required=False)
    @click.option("--roster", type=click.Path(exists=True), help="Guardian roster YAML.")
    @click.option("--name", default=None, help="Vault name for config.yaml.")
    @home_option
    @at_option
    def init(owner, root, roster, name, home, at):
        """Create and initialize a vault owned by OWNER.

        The guardian commitment is ROOT, or the root of --roster.
        """
        guardian_root = _root_from(root, roster)
        home_path = resolve_home(Path(home))
        store = VaultStore(home_path)
        if store.exists():
            vault = store.load(clock=clock_for(at))
        else:
            config = VaultConfig(vault_name=name) if name else VaultConfig()
            save_config(home_path, config)
            store = VaultStore(home_path, config)
            vault = store.create(clock=clock_for(at))
        apply_log_level(store.config.log_level)

        try:
            vault.initialize(owner, guardian_root)
        except VaultError as exc:
            fail(f"{type(exc).__name__}: {exc}")
        except ValueError as exc:
            fail(f"Invalid input: {exc}")
        store.save(vault)

        console.print(f"\n  [green]Vault initialized[/] at [cyan]{vault.address}[/]")
        console.print(f"  Owner: [bold]{vault.owner}[/]")
        console.print(f"  Guardian root: {vault.guardian_root}\n")

    @main.command("status")
    @home_option
    @at_option
    def status(home, at):
        """Show owner, guardian root and liveness."""
        store = open_store(home)
        vault = store.load(clock=clock_for(at))

        table = Table(title=f"Vault {store.config.vault_name}", show_header=False)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Address", vault.address)
        table.add_row("Phase", vault.phase.value)
        if vault.initialized:
            try:
                idle = vault.elapsed()
            except VaultError as exc:
                fail(f"{type(exc).__name__}: {exc}")
            table.add_row("Owner", vault.owner)
            table.add_row("Guardian root", vault.guardian_root)
            table.add_row("Last activity", fmt_time(vault.last_activity))
            table.add_row("Idle for", fmt_duration(idle))
        table.add_row("Native balance", str(vault.native_balance))
        console.print()
        console.print(table)
        console.print()

    @main.command("ping")
    @home_option
    @at_option
    @caller_option
    def ping(home, at, caller):
        """Prove the owner is alive (no other effect)."""
        with vault_call(home, at) as (store, vault):
            vault.keep_alive(resolve_caller(store, caller))
        console.print(f"  [green]Alive[/] at {fmt_time(vault.last_activity)}")

    @main.command("transfer-ownership")
    @click.argument("new_owner")
    @home_option
    @at_option
    @caller_option
    def transfer_ownership(new_owner, home, at, caller):
        """Hand the vault to NEW_OWNER."""
        with vault_call(home, at) as (store, vault):
            vault.transfer_ownership(resolve_caller(store, caller), new_owner)
        console.print(f"  [green]Owner is now[/] {vault.owner}")

    @main.command("set-root")
    @click.argument("root", required=False)
    @click.option("--roster", type=click.Path(exists=True), help="Guardian roster YAML.")
    @home_option
    @at_option
    @caller_option
    def set_root(root, roster, home, at, caller):
        """Commit to a new guardian set."""
        new_root = _root_from(root, roster)
        with vault_call(home, at) as (store, vault):
            vault.set_guardian_root(resolve_caller(store, caller), new_root)
        console.print(f"  [green]Guardian root updated:[/] {vault.guardian_root}")

    @main.command("recover")
    @click.option("--guardian", required=True, help="Guardian identity.")
    @click.option("--delay", type=int, default=None, help="Guardian delay in seconds.")
    @click.option("--proof", "proof", multiple=True, help="Sibling hash (repeat, leaf level first).")
    @click.option("--path", "path", type=int, default=0, help="Orientation bits for --proof.")
    @click.option("--roster", type=click.Path(exists=True), help="Build the proof from this roster.")
    @click.option("--to", "new_owner", required=True, help="Destination owner.")
    @home_option
    @at_option
    @caller_option
    def recover(guardian, delay, proof, path, roster, new_owner, home, at, caller):
        """Reassign ownership with a guardian's proof.

        Anyone may submit the call; the proof is the authorization.
        """
        if roster:
            try:
                decl, merkle_proof = GuardianRoster.load(Path(roster)).proof_for(guardian, delay)
            except (OSError, ValueError, KeyError) as exc:
                fail(f"Cannot build proof: {exc}")
            delay = decl.delay
        else:
            if delay is None:
                fail("--delay is required without --roster.")
            try:
                merkle_proof = MerkleProof(siblings=list(proof), path=path)
            except ValueError as exc:
                fail(f"Invalid proof: {exc}")

        with vault_call(home, at) as (store, vault):
            vault.recover_to(resolve_caller(store, caller), guardian, delay, merkle_proof, new_owner)
        console.print(f"  [green]Recovered.[/] Owner is now {vault.owner}")

    @main.command("events")
    @click.option("--kind", type=click.Choice([k.value for k in EventKind]), default=None)
    @click.option("--limit", default=20, help="Most recent N events (0 = all).")
    @click.option("--json-out", is_flag=True, help="Print raw JSON lines.")
    @home_option
    def events(kind, limit, json_out, home):
        """List vault notifications."""
        store = open_store(home)
        vault = store.load()
        entries = vault.events.filter(EventKind(kind) if kind else None, limit=limit)
        if not entries:
            console.print("\n  [dim]No events recorded.[/]\n")
            return
        if json_out:
            for entry in entries:
                click.echo(entry.model_dump_json())
            return

        table = Table(title="Vault events")
        table.add_column("#", style="dim")
        table.add_column("Time")
        table.add_column("Kind", style="cyan")
        table.add_column("Data")
        for entry in entries:
            table.add_row(
                str(entry.sequence),
                fmt_time(entry.timestamp),
                entry.kind.value,
                json.dumps(entry.data, default=str),
            )
        console.print()
        console.print(table)
        console.print()
