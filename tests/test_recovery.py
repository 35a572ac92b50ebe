"""Tests for guardian recovery: proof gate, delay gate, relaying, replay."""

from __future__ import annotations

import pytest

from skvault.clock import DAY
from skvault.custody import CustodialVault
from skvault.directory import guardian_leaf
from skvault.errors import DelayNotElapsed, InvalidProof, NotOwner, ZeroIdentity
from skvault.models import ZERO_IDENTITY, EventKind, MerkleProof


def _proof(roster, identity):
    decl, proof = roster.proof_for(identity)
    return decl.delay, proof


class TestScenarios:
    """End-to-end recovery timelines."""

    def test_thirty_day_guardian(self, vault, clock, roster, who):
        """After 33 idle days the 30-day guardian succeeds; at 29 days it fails."""
        delay, proof = _proof(roster, who.friend)

        clock.advance(29 * DAY)
        with pytest.raises(DelayNotElapsed):
            vault.recover_to(who.friend, who.friend, delay, proof, who.heir)
        assert vault.owner == who.owner

        clock.advance(4 * DAY)
        vault.recover_to(who.friend, who.friend, delay, proof, who.heir)
        assert vault.owner == who.heir

    def test_keep_alive_resets_the_countdown(self, vault, clock, roster, who, t0):
        """Owner pings at day 2; the 3-day guardian fails at day 4, succeeds at day 6."""
        delay, proof = _proof(roster, who.sister)

        clock.set(t0 + 2 * DAY)
        vault.keep_alive(who.owner)

        clock.set(t0 + 4 * DAY)
        with pytest.raises(DelayNotElapsed) as excinfo:
            vault.recover_to(who.sister, who.sister, delay, proof, who.heir)
        assert excinfo.value.elapsed == 2 * DAY
        assert excinfo.value.delay == 3 * DAY

        clock.set(t0 + 6 * DAY)
        vault.recover_to(who.sister, who.sister, delay, proof, who.heir)
        assert vault.owner == who.heir


class TestDelayGate:
    """elapsed >= delay is the exact boundary."""

    def test_exact_boundary_succeeds(self, vault, clock, roster, who):
        delay, proof = _proof(roster, who.sister)
        clock.advance(delay - 1)
        with pytest.raises(DelayNotElapsed):
            vault.recover_to(who.sister, who.sister, delay, proof, who.heir)
        clock.advance(1)
        vault.recover_to(who.sister, who.sister, delay, proof, who.heir)
        assert vault.owner == who.heir

    def test_longer_guardians_still_wait(self, vault, clock, roster, who):
        delay, proof = _proof(roster, who.lawyer)
        clock.advance(364 * DAY)
        with pytest.raises(DelayNotElapsed):
            vault.recover_to(who.lawyer, who.lawyer, delay, proof, who.heir)

    def test_third_party_deposit_does_not_delay_recovery(self, vault, clock, roster, who):
        delay, proof = _proof(roster, who.sister)
        clock.advance(delay)
        vault.receive_native(who.stranger, 5)
        vault.recover_to(who.sister, who.sister, delay, proof, who.heir)
        assert vault.owner == who.heir


class TestProofGate:
    """Only committed (identity, delay) pairs get through."""

    def test_claiming_shorter_delay_fails(self, vault, clock, roster, who):
        """The 365-day guardian cannot pretend to be a 3-day guardian."""
        _, proof = _proof(roster, who.lawyer)
        clock.advance(400 * DAY)
        with pytest.raises(InvalidProof):
            vault.recover_to(who.lawyer, who.lawyer, 3 * DAY, proof, who.heir)

    def test_stranger_cannot_borrow_a_proof(self, vault, clock, roster, who):
        delay, proof = _proof(roster, who.sister)
        clock.advance(400 * DAY)
        with pytest.raises(InvalidProof):
            vault.recover_to(who.stranger, who.stranger, delay, proof, who.stranger)

    def test_reordered_siblings_fail(self, vault, clock, roster, who):
        delay, proof = _proof(roster, who.sister)
        clock.advance(400 * DAY)
        swapped = MerkleProof(siblings=list(reversed(proof.siblings)), path=proof.path)
        with pytest.raises(InvalidProof):
            vault.recover_to(who.sister, who.sister, delay, swapped, who.heir)

    def test_empty_proof_fails(self, vault, clock, who):
        clock.advance(400 * DAY)
        with pytest.raises(InvalidProof):
            vault.recover_to(who.sister, who.sister, 3 * DAY, [], who.heir)

    def test_malformed_claim_is_invalid_proof(self, vault, clock, roster, who):
        _, proof = _proof(roster, who.sister)
        clock.advance(400 * DAY)
        with pytest.raises(InvalidProof):
            vault.recover_to(who.relayer, who.sister, -1, proof, who.heir)

    def test_invalid_proof_checked_before_delay(self, vault, who):
        """A bad proof is InvalidProof even when the delay would also fail."""
        with pytest.raises(InvalidProof):
            vault.recover_to(who.stranger, who.stranger, 10 * 365 * DAY, ["ab" * 32], who.stranger)

    def test_rotated_root_voids_old_proofs(self, vault, clock, roster, who):
        delay, proof = _proof(roster, who.sister)
        vault.set_guardian_root(who.owner, "ab" * 32)
        clock.advance(400 * DAY)
        with pytest.raises(InvalidProof):
            vault.recover_to(who.sister, who.sister, delay, proof, who.heir)

    def test_non_iterable_proof_is_invalid(self, vault, clock, who):
        clock.advance(400 * DAY)
        with pytest.raises(InvalidProof):
            vault.recover_to(who.relayer, who.sister, 3 * DAY, None, who.heir)
        assert vault.owner == who.owner

    def test_plain_sibling_list_with_path(self, vault, clock, roster, who):
        delay, proof = _proof(roster, who.lawyer)
        clock.advance(delay)
        vault.recover_to(who.lawyer, who.lawyer, delay, proof.siblings, who.heir, path=proof.path)
        assert vault.owner == who.heir


class TestRelaying:
    """Proof validity is the sole authorization for recovery."""

    def test_non_guardian_relayer_succeeds(self, vault, clock, roster, who):
        delay, proof = _proof(roster, who.friend)
        clock.advance(31 * DAY)
        vault.recover_to(who.relayer, who.friend, delay, proof, who.heir)
        assert vault.owner == who.heir

    def test_guardian_may_recover_to_itself(self, vault, clock, roster, who):
        delay, proof = _proof(roster, who.sister)
        clock.advance(delay)
        vault.recover_to(who.sister, who.sister, delay, proof, who.sister)
        assert vault.owner == who.sister

    def test_zero_destination_rejected(self, vault, clock, roster, who):
        delay, proof = _proof(roster, who.sister)
        clock.advance(delay)
        with pytest.raises(ZeroIdentity):
            vault.recover_to(who.relayer, who.sister, delay, proof, ZERO_IDENTITY)
        assert vault.owner == who.owner


class TestAfterRecovery:
    """Effects of a successful recovery."""

    @pytest.fixture
    def recovered(self, vault, clock, roster, who):
        delay, proof = _proof(roster, who.friend)
        clock.advance(33 * DAY)
        vault.recover_to(who.relayer, who.friend, delay, proof, who.heir)
        return vault

    def test_liveness_refreshed(self, recovered, clock):
        assert recovered.last_activity == clock.now()

    def test_root_unchanged(self, recovered, roster):
        assert recovered.guardian_root == roster.root()

    def test_notifications(self, recovered, roster, who):
        transfer, recovery = recovered.events.filter(limit=2)
        assert transfer.kind == EventKind.OWNERSHIP_TRANSFERRED
        assert transfer.data == {"previous": who.owner, "new": who.heir}
        assert recovery.kind == EventKind.RECOVERY_EXECUTED
        _, proof = roster.proof_for(who.friend)
        assert recovery.data["guardian"] == who.friend
        assert recovery.data["new_owner"] == who.heir
        assert recovery.data["delay"] == 30 * DAY
        assert recovery.data["proof"] == proof.siblings
        assert recovery.data["path"] == proof.path
        assert recovery.data["relayer"] == who.relayer

    def test_old_owner_locked_out(self, recovered, who):
        with pytest.raises(NotOwner):
            recovered.keep_alive(who.owner)

    def test_new_owner_can_rotate_guardians(self, recovered, who):
        recovered.set_guardian_root(who.heir, "cd" * 32)
        assert recovered.guardian_root == "cd" * 32

    def test_immediate_replay_blocked(self, recovered, roster, who):
        """The same proof must wait out its delay again."""
        delay, proof = _proof(roster, who.friend)
        with pytest.raises(DelayNotElapsed):
            recovered.recover_to(who.relayer, who.friend, delay, proof, who.stranger)
        assert recovered.owner == who.heir


class TestIsGuardian:
    """Read-only membership check."""

    def test_members(self, vault, roster):
        for decl in roster.guardians:
            _, proof = roster.proof_for(decl.identity)
            assert vault.is_guardian(decl.identity, decl.delay, proof)

    def test_wrong_delay(self, vault, roster, who):
        _, proof = roster.proof_for(who.sister)
        assert not vault.is_guardian(who.sister, 4 * DAY, proof)

    def test_garbage_never_raises(self, vault, who):
        assert not vault.is_guardian("nope", 1, ["xyz"])
        assert not vault.is_guardian(who.sister, "3d", [])

    def test_leaf_helper_matches_roster(self, vault, roster, who):
        assert vault.leaf(who.sister, 3 * DAY) == roster.leaves()[0]

    @pytest.mark.parametrize("junk", [None, 42, object()], ids=["none", "int", "object"])
    def test_non_iterable_proof(self, vault, who, junk):
        assert not vault.is_guardian(who.sister, 3 * DAY, junk)

    def test_single_guardian_needs_a_real_proof(self, clock, who):
        """With one guardian the root is the leaf; only an empty list proves it."""
        solo = CustodialVault(clock=clock)
        solo.initialize(who.owner, guardian_leaf(who.sister, 3 * DAY))
        assert solo.is_guardian(who.sister, 3 * DAY, [])
        assert not solo.is_guardian(who.sister, 3 * DAY, None)

        clock.advance(3 * DAY)
        with pytest.raises(InvalidProof):
            solo.recover_to(who.relayer, who.sister, 3 * DAY, None, who.heir)
        solo.recover_to(who.relayer, who.sister, 3 * DAY, [], who.heir)
        assert solo.owner == who.heir
