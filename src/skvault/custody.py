"""
Asset custody — deposits in, owner-gated withdrawals out.

Deposits are accepted from anyone, without an allow-list. Only a deposit
whose sender is the current owner counts as owner activity; a stranger
sending funds must not be able to keep the liveness clock running.

Withdrawals of every asset kind are owner-only and go through the same
owner gate as every other privileged call.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Sequence

from .errors import InsufficientNativeBalance
from .models import EventKind, normalize_identity
from .registries import (
    MULTI_TOKEN_BATCH_RECEIVED,
    MULTI_TOKEN_RECEIVED,
    TOKEN_RECEIVED,
    Destination,
    MultiTokenRegistry,
    TokenRegistry,
    address_of,
)
from .vault import Vault

logger = logging.getLogger("skvault.custody")


def _check_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise ValueError(f"amount must be a non-negative integer, got {amount!r}")
    return amount


def _registry_name(registry: Any) -> str:
    return getattr(registry, "name", type(registry).__name__)


class CustodialVault(Vault):
    """A vault that holds native currency and registry-held tokens."""

    @property
    def native_balance(self) -> int:
        return self._native_balance

    # ------------------------------------------------------------------
    # Receipt hooks
    # ------------------------------------------------------------------

    def receive_native(self, sender: str, amount: int) -> None:
        """Accept native currency from anyone."""
        amount = _check_amount(amount)
        with self._deposit(sender) as (now, sender):
            self._native_balance += amount
            self._emit(EventKind.NATIVE_RECEIVED, now, sender=sender, amount=amount)
        logger.debug("Received %d native from %s", amount, sender)

    def on_token_received(
        self, registry: Any, operator: str, sender: str, token_id: int, data: bytes = b""
    ) -> str:
        with self._deposit(sender) as (now, sender):
            self._emit(
                EventKind.TOKEN_RECEIVED,
                now,
                registry=_registry_name(registry),
                operator=normalize_identity(operator),
                sender=sender,
                token_ids=[token_id],
                amounts=[1],
            )
        return TOKEN_RECEIVED

    def on_multi_token_received(
        self, registry: Any, operator: str, sender: str, token_id: int, amount: int, data: bytes = b""
    ) -> str:
        with self._deposit(sender) as (now, sender):
            self._emit(
                EventKind.TOKEN_RECEIVED,
                now,
                registry=_registry_name(registry),
                operator=normalize_identity(operator),
                sender=sender,
                token_ids=[token_id],
                amounts=[amount],
            )
        return MULTI_TOKEN_RECEIVED

    def on_multi_token_batch_received(
        self,
        registry: Any,
        operator: str,
        sender: str,
        token_ids: list[int],
        amounts: list[int],
        data: bytes = b"",
    ) -> str:
        with self._deposit(sender) as (now, sender):
            self._emit(
                EventKind.TOKEN_RECEIVED,
                now,
                registry=_registry_name(registry),
                operator=normalize_identity(operator),
                sender=sender,
                token_ids=list(token_ids),
                amounts=list(amounts),
            )
        return MULTI_TOKEN_BATCH_RECEIVED

    # ------------------------------------------------------------------
    # Owner withdrawals
    # ------------------------------------------------------------------

    def transfer_native(self, caller: str, to: Destination, amount: int) -> None:
        """Send native currency out of the vault.

        ``to`` may be a plain identity or an object with ``receive_native``
        (another vault, for instance).

        Raises:
            NotOwner: If the caller is not the owner.
            InsufficientNativeBalance: If the vault holds less than ``amount``.
        """
        amount = _check_amount(amount)
        with self._owner_call(caller) as now:
            recipient = address_of(to)
            if amount > self._native_balance:
                raise InsufficientNativeBalance(amount, self._native_balance)
            self._native_balance -= amount
            self._emit(EventKind.NATIVE_SENT, now, to=recipient, amount=amount)
            if not isinstance(to, str) and hasattr(to, "receive_native"):
                to.receive_native(self.address, amount)
        logger.info("Sent %d native to %s", amount, recipient)

    def transfer_token(
        self, caller: str, registry: TokenRegistry, to: Destination, token_id: int, data: bytes = b""
    ) -> None:
        """Send a unique token held for the vault.

        Raises:
            NotOwner: If the caller is not the owner.
            InsufficientTokenBalance: If the vault does not hold the token.
        """
        with self._owner_call(caller) as now:
            self._emit_sent(now, registry, to, [token_id], [1])
            registry.safe_transfer(self.address, self.address, to, token_id, data)

    def transfer_multi_token(
        self,
        caller: str,
        registry: MultiTokenRegistry,
        to: Destination,
        token_id: int,
        amount: int,
        data: bytes = b"",
    ) -> None:
        """Send ``amount`` of one multi-token id.

        Raises:
            NotOwner: If the caller is not the owner.
            InsufficientTokenBalance: If the vault's balance is too low.
        """
        with self._owner_call(caller) as now:
            self._emit_sent(now, registry, to, [token_id], [amount])
            registry.safe_transfer(self.address, self.address, to, token_id, amount, data)

    def transfer_multi_token_batch(
        self,
        caller: str,
        registry: MultiTokenRegistry,
        to: Destination,
        token_ids: Sequence[int],
        amounts: Sequence[int],
        data: bytes = b"",
    ) -> None:
        """Send several multi-token ids at once, all or nothing."""
        with self._owner_call(caller) as now:
            self._emit_sent(now, registry, to, list(token_ids), list(amounts))
            registry.safe_batch_transfer(self.address, self.address, to, token_ids, amounts, data)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _deposit(self, sender: str) -> Iterator[tuple[int, str]]:
        """Deposit wrapper: refreshes liveness only for the owner."""
        sender = normalize_identity(sender)
        with self._transaction() as now:
            self._require_initialized()
            if sender == self._owner:
                self.liveness.touch(now)
            yield now, sender

    def _emit_sent(
        self, now: int, registry: Any, to: Destination, token_ids: list[int], amounts: list[int]
    ) -> None:
        self._emit(
            EventKind.TOKEN_SENT,
            now,
            registry=_registry_name(registry),
            to=address_of(to),
            token_ids=token_ids,
            amounts=amounts,
        )
