"""Native asset commands: deposit, withdraw."""

from __future__ import annotations

import click

from ._common import at_option, caller_option, console, home_option, resolve_caller, vault_call


def register_asset_commands(main: click.Group) -> None:
    """Register native currency commands."""

    @main.command("deposit")
    @click.argument("amount", type=click.IntRange(min=0))
    @home_option
    @at_option
    @caller_option
    def deposit(amount, home, at, caller):
        """Send AMOUNT of native currency into the vault.

        Only a deposit from the owner counts as owner activity.
        """
        with vault_call(home, at) as (store, vault):
            sender = resolve_caller(store, caller)
            before = vault.last_activity
            vault.receive_native(sender, amount)
        console.print(f"  [green]Deposited[/] {amount} (balance {vault.native_balance})")
        if vault.last_activity != before:
            console.print("  [dim]Owner deposit: liveness refreshed[/]")

    @main.command("withdraw")
    @click.argument("to")
    @click.argument("amount", type=click.IntRange(min=0))
    @home_option
    @at_option
    @caller_option
    def withdraw(to, amount, home, at, caller):
        """Send AMOUNT of native currency to TO (owner only)."""
        with vault_call(home, at) as (store, vault):
            vault.transfer_native(resolve_caller(store, caller), to, amount)
        console.print(f"  [green]Sent[/] {amount} to {to} (balance {vault.native_balance})")
