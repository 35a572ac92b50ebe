"""
Pydantic models for the vault's state and its off-core companions.

Identities are 20-byte addresses (``0x`` + 40 hex), hashes are 32-byte
SHA-256 digests (64 hex). Both are normalised to lowercase on the way in
so equality checks never depend on how a caller typed them.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

ZERO_IDENTITY = "0x" + "0" * 40

_IDENTITY_RE = re.compile(r"^0x[0-9a-f]{40}$")
_HASH_RE = re.compile(r"^[0-9a-f]{64}$")


def normalize_identity(value: str) -> str:
    """Canonical lowercase form of an address.

    Args:
        value: Address string, with or without the 0x prefix.

    Returns:
        str: ``0x`` followed by 40 lowercase hex characters.

    Raises:
        ValueError: If the value is not a 20-byte hex address.
    """
    if not isinstance(value, str):
        raise ValueError(f"identity must be a string, got {type(value).__name__}")
    text = value.strip().lower()
    if not text.startswith("0x"):
        text = "0x" + text
    if not _IDENTITY_RE.match(text):
        raise ValueError(f"not a 20-byte hex identity: {value!r}")
    return text


def normalize_hash(value: str) -> str:
    """Canonical lowercase form of a 32-byte hex digest.

    Raises:
        ValueError: If the value is not 64 hex characters (0x prefix allowed).
    """
    if not isinstance(value, str):
        raise ValueError(f"hash must be a string, got {type(value).__name__}")
    text = value.strip().lower()
    if text.startswith("0x"):
        text = text[2:]
    if not _HASH_RE.match(text):
        raise ValueError(f"not a 32-byte hex hash: {value!r}")
    return text


def is_zero(identity: str) -> bool:
    """True for the null identity."""
    return identity == ZERO_IDENTITY


class VaultPhase(str, Enum):
    """Lifecycle of a vault deployment."""

    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"


class VaultState(BaseModel):
    """Everything the vault itself stores.

    Guardians are not here: only the Merkle root committing to them.
    """

    owner: str = ZERO_IDENTITY
    last_activity: int = 0
    guardian_root: str = "0" * 64
    initialized: bool = False
    native_balance: int = 0

    @property
    def phase(self) -> VaultPhase:
        return VaultPhase.ACTIVE if self.initialized else VaultPhase.UNINITIALIZED


class GuardianDeclaration(BaseModel):
    """A guardian and the inactivity delay it must wait out."""

    identity: str
    delay: int = Field(ge=0, description="Seconds of owner silence required")
    label: str = ""

    @field_validator("identity")
    @classmethod
    def _check_identity(cls, value: str) -> str:
        return normalize_identity(value)


class MerkleProof(BaseModel):
    """Sibling path from a leaf to the root.

    Bit ``i`` of ``path`` is 1 when the running hash is the right-hand
    operand at step ``i``.
    """

    siblings: list[str] = Field(default_factory=list)
    path: int = Field(default=0, ge=0)

    @field_validator("siblings")
    @classmethod
    def _check_siblings(cls, value: list[str]) -> list[str]:
        return [normalize_hash(v) for v in value]


class EventKind(str, Enum):
    """Notification types emitted by the vault."""

    ALIVE = "alive"
    GUARDIAN_ROOT_CHANGED = "guardian_root_changed"
    OWNERSHIP_TRANSFERRED = "ownership_transferred"
    RECOVERY_EXECUTED = "recovery_executed"
    NATIVE_RECEIVED = "native_received"
    NATIVE_SENT = "native_sent"
    TOKEN_RECEIVED = "token_received"
    TOKEN_SENT = "token_sent"


class VaultEvent(BaseModel):
    """One append-only notification."""

    sequence: int = 0
    kind: EventKind
    timestamp: int
    data: dict[str, Any] = Field(default_factory=dict)
