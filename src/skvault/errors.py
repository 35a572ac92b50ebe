"""
Vault error taxonomy.

Every failure is an ordinary, testable rejection: the call is aborted,
no state changes, and the exception propagates to whoever made the call.
"""

from __future__ import annotations


class VaultError(Exception):
    """Base class for every vault rejection."""


class AlreadyInitialized(VaultError):
    """Raised when initialize() is called on an active vault."""


class NotInitialized(VaultError):
    """Raised when a state-changing call reaches an uninitialized vault."""


class NotOwner(VaultError):
    """Raised when a privileged call comes from anyone but the owner."""

    def __init__(self, caller: str, owner: str) -> None:
        super().__init__(f"{caller} is not the vault owner")
        self.caller = caller
        self.owner = owner


class ZeroIdentity(VaultError):
    """Raised when the null identity would become the owner."""


class InvalidProof(VaultError):
    """Raised when a guardian membership proof does not verify."""


class DelayNotElapsed(VaultError):
    """Raised when a valid guardian acts before its delay has run out."""

    def __init__(self, delay: int, elapsed: int) -> None:
        super().__init__(
            f"guardian delay {delay}s not elapsed ({elapsed}s since last activity)"
        )
        self.delay = delay
        self.elapsed = elapsed


class InsufficientBalance(VaultError):
    """Raised when a withdrawal exceeds what the vault holds."""


class InsufficientNativeBalance(InsufficientBalance):
    """Native currency balance is too low."""

    def __init__(self, requested: int, available: int) -> None:
        super().__init__(f"requested {requested}, vault holds {available}")
        self.requested = requested
        self.available = available


class InsufficientTokenBalance(InsufficientBalance):
    """A token registry does not credit the sender with enough units."""


class TransferRejected(VaultError):
    """Raised by a registry when the receiver does not acknowledge a transfer."""


class ClockUnderflow(VaultError, ArithmeticError):
    """Raised when time would run backwards relative to the liveness clock."""


class ReentrantCall(VaultError):
    """Raised when a collaborator calls back into a vault mid-call."""
