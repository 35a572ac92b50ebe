"""Shared test fixtures for skvault."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from skvault.clock import DAY, ManualClock
from skvault.custody import CustodialVault
from skvault.directory import GuardianRoster

T0 = 1_700_000_000


def _addr(n: int) -> str:
    return "0x" + f"{n:02x}" * 20


@pytest.fixture
def who() -> SimpleNamespace:
    """Named identities used across tests."""
    return SimpleNamespace(
        owner=_addr(0x0A),
        stranger=_addr(0x0B),
        relayer=_addr(0x0C),
        heir=_addr(0x0D),
        vault=_addr(0xEE),
        sister=_addr(0x11),
        friend=_addr(0x22),
        lawyer=_addr(0x33),
    )


@pytest.fixture
def clock() -> ManualClock:
    """A clock parked at a fixed start time."""
    return ManualClock(start=T0)


@pytest.fixture
def roster(who: SimpleNamespace) -> GuardianRoster:
    """Three guardians: 3 days, 30 days, 365 days."""
    book = GuardianRoster()
    book.add(who.sister, 3 * DAY, "sister")
    book.add(who.friend, 30 * DAY, "friend")
    book.add(who.lawyer, 365 * DAY, "lawyer")
    return book


@pytest.fixture
def vault(clock: ManualClock, roster: GuardianRoster, who: SimpleNamespace) -> CustodialVault:
    """An initialized vault committed to the three-guardian roster."""
    v = CustodialVault(clock=clock, address=who.vault)
    v.initialize(who.owner, roster.root())
    return v


@pytest.fixture
def vault_home(tmp_path: Path) -> Path:
    """A temporary vault home directory."""
    home = tmp_path / ".skvault"
    home.mkdir()
    return home


@pytest.fixture
def t0() -> int:
    """The time every test clock starts at."""
    return T0
