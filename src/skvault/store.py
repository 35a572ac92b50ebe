"""
On-disk persistence for a vault deployment.

The core runs entirely in memory; the store loads it before a call and
saves it after. Notifications are mirrored to ``events.jsonl`` as they
commit, so the file is the append-only record indexers read.

Storage layout:
    ~/.skvault/
    ├── config/config.yaml    # VaultConfig
    ├── state.json            # Deployment (address + VaultState)
    └── events.jsonl          # One VaultEvent per line
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from .clock import ClockSource
from .config import VaultConfig, load_config
from .custody import CustodialVault
from .events import EventLog, read_event_file
from .models import VaultState

logger = logging.getLogger("skvault.store")

STATE_FILE = "state.json"
EVENTS_FILE = "events.jsonl"


class Deployment(BaseModel):
    """What gets written to state.json."""

    address: str
    state: VaultState = Field(default_factory=VaultState)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    saved_at: Optional[datetime] = None


class VaultStore:
    """Loads and saves one vault deployment under a home directory.

    Args:
        home: Vault home directory.
        config: Settings; loaded from the home if omitted.
    """

    def __init__(self, home: Path, config: Optional[VaultConfig] = None) -> None:
        self.home = home
        self.config = config or load_config(home)
        self.state_file = home / STATE_FILE
        self.events_file = home / EVENTS_FILE

    def exists(self) -> bool:
        return self.state_file.exists()

    def create(self, clock: Optional[ClockSource] = None, address: Optional[str] = None) -> CustodialVault:
        """Create a fresh, uninitialized deployment and persist it.

        Raises:
            FileExistsError: If a deployment already lives here.
        """
        if self.exists():
            raise FileExistsError(f"a vault already exists at {self.home}")
        self.home.mkdir(parents=True, exist_ok=True)
        vault = CustodialVault(clock=clock, events=self._event_log([]), address=address)
        self._write(Deployment(address=vault.address, state=vault.snapshot()))
        logger.info("Created vault %s at %s", vault.address, self.home)
        return vault

    def load(self, clock: Optional[ClockSource] = None) -> CustodialVault:
        """Rebuild the vault from disk.

        Raises:
            FileNotFoundError: If no deployment exists.
            ValueError: If state.json is unreadable.
        """
        deployment = self.read_deployment()
        events = read_event_file(self.events_file) if self.config.event_log else []
        return CustodialVault(
            clock=clock,
            events=self._event_log(events),
            state=deployment.state,
            address=deployment.address,
        )

    def save(self, vault: CustodialVault) -> None:
        """Persist the vault's current state."""
        try:
            deployment = self.read_deployment()
        except FileNotFoundError:
            deployment = Deployment(address=vault.address)
        deployment.address = vault.address
        deployment.state = vault.snapshot()
        deployment.saved_at = datetime.now(timezone.utc)
        self._write(deployment)

    def read_deployment(self) -> Deployment:
        if not self.exists():
            raise FileNotFoundError(f"no vault at {self.home}")
        try:
            return Deployment.model_validate_json(self.state_file.read_text())
        except ValueError as exc:
            raise ValueError(f"Corrupt vault state {self.state_file}: {exc}") from exc

    def _event_log(self, events: list) -> EventLog:
        sink = self.events_file if self.config.event_log else None
        return EventLog(sink=sink, events=events)

    def _write(self, deployment: Deployment) -> None:
        tmp_path = self.state_file.with_name(f".{STATE_FILE}.tmp")
        tmp_path.write_text(json.dumps(deployment.model_dump(mode="json"), indent=2))
        tmp_path.rename(self.state_file)
