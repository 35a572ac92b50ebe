"""Shared utilities for all CLI command modules.

Provides the Rich console, vault loading, and the error rendering every
command uses: library code raises, the CLI prints and exits 1.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

import click
from rich.console import Console
from rich.markup import escape

from .. import VAULT_HOME
from ..clock import ClockSource, ManualClock, SystemClock
from ..config import resolve_home
from ..custody import CustodialVault
from ..errors import VaultError
from ..store import VaultStore

console = Console()

home_option = click.option(
    "--home", default=VAULT_HOME, type=click.Path(), help="Vault home directory."
)
at_option = click.option(
    "--at", "at", type=int, default=None, help="Act at this UNIX timestamp instead of now."
)
caller_option = click.option(
    "--as", "caller", default=None, help="Identity making the call (defaults to config)."
)


def clock_for(at: Optional[int]) -> ClockSource:
    return ManualClock(start=at) if at is not None else SystemClock()


def fmt_time(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def fmt_duration(seconds: int) -> str:
    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes = rest // 60
    if days:
        return f"{days}d {hours}h"
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m {rest % 60}s"


def fail(message: str) -> None:
    console.print(f"[bold red]{escape(message)}[/]")
    sys.exit(1)


def open_store(home: str) -> VaultStore:
    home_path = resolve_home(Path(home))
    store = VaultStore(home_path)
    if not store.exists():
        fail(f"No vault found at {home_path}. Run skvault init first.")
    apply_log_level(store.config.log_level)
    return store


def apply_log_level(level: str) -> None:
    """Set the skvault logger level from config, unless --verbose asked for DEBUG."""
    ctx = click.get_current_context(silent=True)
    verbose = ctx is not None and ctx.find_root().params.get("verbose")
    logging.getLogger("skvault").setLevel(logging.DEBUG if verbose else level)


def resolve_caller(store: VaultStore, caller: Optional[str]) -> str:
    identity = caller or store.config.default_caller
    if not identity:
        fail("No caller given. Use --as or set default_caller in config.yaml.")
    return identity


@contextmanager
def vault_call(home: str, at: Optional[int]) -> Iterator[tuple[VaultStore, CustodialVault]]:
    """Load the vault, run one call, save on success, render failures."""
    store = open_store(home)
    try:
        vault = store.load(clock=clock_for(at))
    except ValueError as exc:
        fail(str(exc))
    try:
        yield store, vault
    except VaultError as exc:
        fail(f"{type(exc).__name__}: {exc}")
    except ValueError as exc:
        fail(f"Invalid input: {exc}")
    store.save(vault)
