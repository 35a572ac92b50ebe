"""
In-process asset registries — the external ledgers a vault holds assets in.

The vault never keeps its own copy of token ownership. A registry records
the vault as holder, and the vault only asks registries to move things.

Safe transfers to a receiver object call its receipt hook and demand the
exact acknowledgement value back. Anything else (a wrong value, or an
exception from the hook) undoes the transfer and raises TransferRejected
or re-raises the hook's error.

A receiver is any object with an ``address`` attribute and the relevant
hook; a plain identity string receives without a hook.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence, Union

from .errors import InsufficientTokenBalance, TransferRejected, ZeroIdentity
from .models import is_zero, normalize_identity

logger = logging.getLogger("skvault.registries")

TOKEN_RECEIVED = "0x150b7a02"
MULTI_TOKEN_RECEIVED = "0xf23a6e61"
MULTI_TOKEN_BATCH_RECEIVED = "0xbc197c81"


class TokenReceiver(Protocol):
    """Receiver of unique tokens."""

    address: str

    def on_token_received(
        self, registry: Any, operator: str, sender: str, token_id: int, data: bytes = b""
    ) -> str: ...


class MultiTokenReceiver(Protocol):
    """Receiver of multi-token balances."""

    address: str

    def on_multi_token_received(
        self, registry: Any, operator: str, sender: str, token_id: int, amount: int, data: bytes = b""
    ) -> str: ...

    def on_multi_token_batch_received(
        self,
        registry: Any,
        operator: str,
        sender: str,
        token_ids: list[int],
        amounts: list[int],
        data: bytes = b"",
    ) -> str: ...


Destination = Union[str, Any]


def address_of(target: Destination) -> str:
    """Identity of a plain address or a receiver object.

    Raises:
        ZeroIdentity: For the null identity.
    """
    identity = normalize_identity(target if isinstance(target, str) else target.address)
    if is_zero(identity):
        raise ZeroIdentity("cannot transfer to the zero identity")
    return identity


class TokenRegistry:
    """Ledger of unique tokens (one holder per token id).

    Args:
        name: Registry name, used in notifications.
    """

    def __init__(self, name: str = "tokens") -> None:
        self.name = name
        self._holders: dict[int, str] = {}

    def mint(self, to: Destination, token_id: int) -> None:
        """Create a token held by ``to``. No receipt hook is called.

        Raises:
            ValueError: If the token id already exists.
        """
        if token_id in self._holders:
            raise ValueError(f"token {token_id} already minted")
        self._holders[token_id] = address_of(to)

    def owner_of(self, token_id: int) -> str:
        """Current holder.

        Raises:
            KeyError: If the token does not exist.
        """
        if token_id not in self._holders:
            raise KeyError(f"token {token_id} does not exist")
        return self._holders[token_id]

    def tokens_of(self, holder: str) -> list[int]:
        holder = normalize_identity(holder)
        return sorted(tid for tid, h in self._holders.items() if h == holder)

    def safe_transfer(
        self,
        operator: str,
        sender: str,
        to: Destination,
        token_id: int,
        data: bytes = b"",
    ) -> None:
        """Move a token and have the receiver acknowledge it.

        Raises:
            InsufficientTokenBalance: If ``sender`` does not hold the token.
            TransferRejected: If the operator is not the holder or the
                receiver does not acknowledge.
        """
        operator = normalize_identity(operator)
        sender = normalize_identity(sender)
        if self._holders.get(token_id) != sender:
            raise InsufficientTokenBalance(f"{sender} does not hold token {token_id} in {self.name}")
        if operator != sender:
            raise TransferRejected(f"{operator} may not move tokens of {sender}")
        recipient = address_of(to)

        self._holders[token_id] = recipient
        hook = None if isinstance(to, str) else getattr(to, "on_token_received", None)
        if hook is None:
            return

        try:
            ack = hook(self, operator, sender, token_id, data)
        except Exception:
            self._holders[token_id] = sender
            raise
        if ack != TOKEN_RECEIVED:
            self._holders[token_id] = sender
            raise TransferRejected(f"{recipient} did not acknowledge token {token_id}")
        logger.debug("%s: token %s %s -> %s", self.name, token_id, sender, recipient)


class MultiTokenRegistry:
    """Ledger of fungible balances per token id.

    Args:
        name: Registry name, used in notifications.
    """

    def __init__(self, name: str = "multi-tokens") -> None:
        self.name = name
        self._balances: dict[tuple[int, str], int] = {}

    def mint(self, to: Destination, token_id: int, amount: int) -> None:
        if amount < 0:
            raise ValueError("amount cannot be negative")
        key = (token_id, address_of(to))
        self._balances[key] = self._balances.get(key, 0) + amount

    def balance_of(self, holder: str, token_id: int) -> int:
        return self._balances.get((token_id, normalize_identity(holder)), 0)

    def safe_transfer(
        self,
        operator: str,
        sender: str,
        to: Destination,
        token_id: int,
        amount: int,
        data: bytes = b"",
    ) -> None:
        """Move ``amount`` of one token id and have the receiver acknowledge it.

        Raises:
            InsufficientTokenBalance: If ``sender`` holds too little.
            TransferRejected: On operator mismatch or missing acknowledgement.
        """
        self._move(operator, sender, to, [token_id], [amount], batch=False, data=data)

    def safe_batch_transfer(
        self,
        operator: str,
        sender: str,
        to: Destination,
        token_ids: Sequence[int],
        amounts: Sequence[int],
        data: bytes = b"",
    ) -> None:
        """Move several token ids in one all-or-nothing step.

        Raises:
            ValueError: If ids and amounts differ in length.
        """
        if len(token_ids) != len(amounts):
            raise ValueError("token_ids and amounts must have the same length")
        self._move(operator, sender, to, list(token_ids), list(amounts), batch=True, data=data)

    def _move(
        self,
        operator: str,
        sender: str,
        to: Destination,
        token_ids: list[int],
        amounts: list[int],
        batch: bool,
        data: bytes,
    ) -> None:
        operator = normalize_identity(operator)
        sender = normalize_identity(sender)
        if operator != sender:
            raise TransferRejected(f"{operator} may not move tokens of {sender}")
        recipient = address_of(to)
        if any(amount < 0 for amount in amounts):
            raise ValueError("amounts cannot be negative")

        before = dict(self._balances)
        for token_id, amount in zip(token_ids, amounts):
            held = self._balances.get((token_id, sender), 0)
            if held < amount:
                self._balances = before
                raise InsufficientTokenBalance(
                    f"{sender} holds {held} of token {token_id} in {self.name}, needs {amount}"
                )
            self._balances[(token_id, sender)] = held - amount
            self._balances[(token_id, recipient)] = self._balances.get((token_id, recipient), 0) + amount

        if isinstance(to, str):
            return
        if batch:
            hook = getattr(to, "on_multi_token_batch_received", None)
            expected = MULTI_TOKEN_BATCH_RECEIVED
            args: tuple = (token_ids, amounts, data)
        else:
            hook = getattr(to, "on_multi_token_received", None)
            expected = MULTI_TOKEN_RECEIVED
            args = (token_ids[0], amounts[0], data)
        if hook is None:
            return

        try:
            ack = hook(self, operator, sender, *args)
        except Exception:
            self._balances = before
            raise
        if ack != expected:
            self._balances = before
            raise TransferRejected(f"{recipient} did not acknowledge multi-token transfer")
        logger.debug("%s: %s %s -> %s", self.name, dict(zip(token_ids, amounts)), sender, recipient)
