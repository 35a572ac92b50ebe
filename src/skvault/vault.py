"""
Vault state machine — ownership, liveness and guardian recovery.

    Uninitialized --initialize()--> Active

An active vault answers to two kinds of caller:

    Owner path       every privileged call goes through one gate that
                     checks ownership and refreshes the liveness clock.
    Recovery path    anyone holding a valid guardian proof may move
                     ownership once that guardian's delay has passed
                     since the last owner activity.

Recovery does not check who submits the proof. A guardian may hand its
proof to a relayer, and the relayer's call is as good as the guardian's.

Each call is atomic: state is snapshotted on entry and restored if
anything raises, and notifications are buffered until the call commits.
A successful recovery refreshes liveness, so the same proof cannot be
replayed until its delay has run out again.

Usage:
    vault = Vault(clock=ManualClock(start=0))
    vault.initialize(owner, roster.root())
    vault.keep_alive(owner)
    vault.recover_to(relayer, guardian, 30 * DAY, proof, new_owner)
"""

from __future__ import annotations

import logging
import secrets
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Sequence, Union

from .clock import ClockSource, LivenessClock, SystemClock
from .directory import GuardianDirectory, guardian_leaf
from .errors import (
    AlreadyInitialized,
    ClockUnderflow,
    DelayNotElapsed,
    InvalidProof,
    NotInitialized,
    NotOwner,
    ReentrantCall,
    ZeroIdentity,
)
from .events import EventLog
from .merkle import verify
from .models import (
    ZERO_IDENTITY,
    EventKind,
    MerkleProof,
    VaultEvent,
    VaultPhase,
    VaultState,
    is_zero,
    normalize_hash,
    normalize_identity,
)

logger = logging.getLogger("skvault.vault")

ProofLike = Union[MerkleProof, Sequence[str]]


def _unpack_proof(proof: ProofLike, path: int) -> tuple[Any, int]:
    """Siblings and orientation bits from either proof form.

    A proof that is not iterable is passed through as-is; verify() rejects it.
    """
    if isinstance(proof, MerkleProof):
        return list(proof.siblings), proof.path
    try:
        return list(proof), path
    except TypeError:
        return proof, path


class Vault:
    """One vault deployment.

    Args:
        clock: Time source. Defaults to the system clock.
        events: Notification log. A fresh in-memory log if omitted.
        state: Previously persisted state to resume from.
        address: The vault's own identity, as seen by asset registries.
    """

    def __init__(
        self,
        clock: Optional[ClockSource] = None,
        events: Optional[EventLog] = None,
        state: Optional[VaultState] = None,
        address: Optional[str] = None,
    ) -> None:
        state = state or VaultState()
        self.address = normalize_identity(address or "0x" + secrets.token_hex(20))
        self.events = events if events is not None else EventLog()
        self.liveness = LivenessClock(state.last_activity)
        self.directory = GuardianDirectory(state.guardian_root)
        self._clock = clock or SystemClock()
        self._owner = state.owner
        self._initialized = state.initialized
        self._native_balance = state.native_balance
        self._pending: list[VaultEvent] = []
        self._in_call = False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def last_activity(self) -> int:
        return self.liveness.last_activity

    @property
    def guardian_root(self) -> str:
        return self.directory.root

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def phase(self) -> VaultPhase:
        return VaultPhase.ACTIVE if self._initialized else VaultPhase.UNINITIALIZED

    @property
    def clock(self) -> ClockSource:
        return self._clock

    def snapshot(self) -> VaultState:
        """Current state as a detached model."""
        return VaultState(
            owner=self._owner,
            last_activity=self.liveness.last_activity,
            guardian_root=self.directory.root,
            initialized=self._initialized,
            native_balance=self._native_balance,
        )

    @staticmethod
    def leaf(identity: str, delay: int) -> str:
        """Leaf hash for a guardian declaration (for off-core proof assembly)."""
        return guardian_leaf(identity, delay)

    def is_guardian(self, identity: str, delay: int, proof: ProofLike, path: int = 0) -> bool:
        """Check a guardian claim against the live root. Never raises."""
        try:
            leaf = guardian_leaf(identity, delay)
        except ValueError:
            return False
        siblings, path = _unpack_proof(proof, path)
        return verify(leaf, siblings, self.directory.root, path)

    def elapsed(self) -> int:
        """Seconds since the last owner activity, by the vault's clock."""
        return self.liveness.elapsed_since(self._clock.now())

    def can_recover(self, delay: int) -> bool:
        """Whether a guardian with ``delay`` could act right now."""
        return self._initialized and self.elapsed() >= delay

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize(self, initial_owner: str, initial_guardian_root: str) -> None:
        """Activate the vault. Allowed exactly once.

        Raises:
            AlreadyInitialized: If the vault is already active.
            ZeroIdentity: If the owner is the null identity.
        """
        with self._transaction() as now:
            if self._initialized:
                raise AlreadyInitialized("vault is already initialized")
            owner = normalize_identity(initial_owner)
            if is_zero(owner):
                raise ZeroIdentity("initial owner cannot be the zero identity")
            root = normalize_hash(initial_guardian_root)

            self._owner = owner
            self.directory.set_root(root)
            self.liveness.touch(now)
            self._initialized = True

            self._emit(EventKind.ALIVE, now)
            self._emit(EventKind.GUARDIAN_ROOT_CHANGED, now, root=root)
            self._emit(EventKind.OWNERSHIP_TRANSFERRED, now, previous=ZERO_IDENTITY, new=owner)
        logger.info("Vault %s initialized for owner %s", self.address, owner)

    # ------------------------------------------------------------------
    # Owner path
    # ------------------------------------------------------------------

    def keep_alive(self, caller: str) -> None:
        """Signal owner activity without any other effect."""
        with self._owner_call(caller) as now:
            self._emit(EventKind.ALIVE, now)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """Hand the vault to ``new_owner``.

        Raises:
            NotOwner: If the caller is not the owner.
            ZeroIdentity: If the new owner is the null identity.
        """
        with self._owner_call(caller) as now:
            new_owner = self._require_destination(new_owner)
            previous = self._owner
            self._owner = new_owner
            self._emit(EventKind.OWNERSHIP_TRANSFERRED, now, previous=previous, new=new_owner)
        logger.info("Ownership transferred %s -> %s", previous, new_owner)

    def set_guardian_root(self, caller: str, new_root: str) -> None:
        """Commit to a new guardian set.

        Raises:
            NotOwner: If the caller is not the owner.
        """
        with self._owner_call(caller) as now:
            new_root = normalize_hash(new_root)
            self.directory.set_root(new_root)
            self._emit(EventKind.GUARDIAN_ROOT_CHANGED, now, root=new_root)

    # ------------------------------------------------------------------
    # Recovery path
    # ------------------------------------------------------------------

    def recover_to(
        self,
        caller: str,
        guardian: str,
        delay: int,
        proof: ProofLike,
        new_owner: str,
        path: int = 0,
    ) -> None:
        """Reassign ownership on behalf of a committed guardian.

        Args:
            caller: Whoever submits the call. Not checked against guardian.
            guardian: Claimed guardian identity.
            delay: Claimed guardian delay in seconds.
            proof: Sibling path (or a MerkleProof carrying its own path).
            new_owner: Destination owner.
            path: Orientation bits when ``proof`` is a plain list.

        Raises:
            NotInitialized: Before initialization.
            ZeroIdentity: If the destination is the null identity.
            InvalidProof: If the claim is not committed under the live root.
            DelayNotElapsed: If the owner was active less than ``delay`` ago.
        """
        caller = normalize_identity(caller)
        siblings, path = _unpack_proof(proof, path)

        with self._transaction() as now:
            self._require_initialized()
            new_owner = self._require_destination(new_owner)

            if not self.is_guardian(guardian, delay, siblings, path):
                logger.warning("Rejected recovery: invalid proof for %s (delay %s)", guardian, delay)
                raise InvalidProof(f"no guardian {guardian} with delay {delay} under current root")
            guardian = normalize_identity(guardian)

            elapsed = self.liveness.elapsed_since(now)
            if elapsed < delay:
                logger.warning(
                    "Rejected recovery by %s: %ds elapsed, delay %ds", guardian, elapsed, delay
                )
                raise DelayNotElapsed(delay, elapsed)

            previous = self._owner
            self._owner = new_owner
            self.liveness.touch(now)

            self._emit(EventKind.OWNERSHIP_TRANSFERRED, now, previous=previous, new=new_owner)
            self._emit(
                EventKind.RECOVERY_EXECUTED,
                now,
                guardian=guardian,
                new_owner=new_owner,
                delay=delay,
                proof=siblings,
                path=path,
                relayer=caller,
            )
        logger.info("Recovery by guardian %s: owner %s -> %s", guardian, previous, new_owner)

    # ------------------------------------------------------------------
    # Call machinery
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self) -> Iterator[int]:
        """Run one call atomically and yield its timestamp."""
        if self._in_call:
            raise ReentrantCall("vault is already executing a call")
        now = self._clock.now()
        if now < self.liveness.last_activity:
            raise ClockUnderflow(
                f"clock at {now} is behind last activity {self.liveness.last_activity}"
            )

        before = self.snapshot()
        self._in_call = True
        self._pending = []
        try:
            yield now
        except Exception:
            self._restore(before)
            self._pending = []
            raise
        else:
            pending, self._pending = self._pending, []
            try:
                self.events.commit(pending)
            except Exception:
                self._restore(before)
                raise
        finally:
            self._in_call = False

    @contextmanager
    def _owner_call(self, caller: str) -> Iterator[int]:
        """The single gate every owner-only operation passes through.

        Checks initialization and ownership, refreshes liveness, then
        runs the operation body. A failing body rolls the refresh back.
        """
        caller = normalize_identity(caller)
        with self._transaction() as now:
            self._require_initialized()
            if caller != self._owner:
                raise NotOwner(caller, self._owner)
            self.liveness.touch(now)
            yield now

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise NotInitialized("vault has not been initialized")

    @staticmethod
    def _require_destination(identity: str) -> str:
        identity = normalize_identity(identity)
        if is_zero(identity):
            raise ZeroIdentity("the zero identity cannot own the vault")
        return identity

    def _restore(self, state: VaultState) -> None:
        self._owner = state.owner
        self.liveness.last_activity = state.last_activity
        self.directory.root = state.guardian_root
        self._initialized = state.initialized
        self._native_balance = state.native_balance

    def _emit(self, kind: EventKind, now: int, **data: Any) -> None:
        self._pending.append(VaultEvent(kind=kind, timestamp=now, data=data))
