"""Tests for Merkle verification and off-core tree building."""

from __future__ import annotations

import hashlib

import pytest

from skvault.merkle import (
    build_levels,
    build_proof,
    build_root,
    combine,
    verify,
    verify_proof,
    tree_depth,
)


def _h(label: str) -> str:
    return hashlib.sha256(label.encode()).hexdigest()


L1, L2, L3 = _h("one"), _h("two"), _h("three")
H12 = combine(L1, L2)
R = combine(H12, L3)


class TestCombine:
    """Pair hashing must be orientation-sensitive."""

    def test_order_matters(self):
        assert combine(L1, L2) != combine(L2, L1)

    def test_matches_sha256_of_concatenation(self):
        expected = hashlib.sha256(bytes.fromhex(L1) + bytes.fromhex(L2)).hexdigest()
        assert combine(L1, L2) == expected

    def test_accepts_prefixed_uppercase(self):
        assert combine("0x" + L1.upper(), L2) == H12


class TestVerifySoundness:
    """The three-leaf tree R = H(H(L1, L2), L3)."""

    def test_builder_matches_hand_computed_root(self):
        assert build_root([L1, L2, L3]) == R

    def test_valid_proof(self):
        assert verify(L1, [L2, L3], R)

    def test_swapped_proof_rejected(self):
        """Reordering the siblings must break the proof."""
        assert not verify(L1, [L3, L2], R)

    def test_right_hand_leaf_needs_path_bits(self):
        assert verify(L2, [L1, L3], R, path=0b01)
        assert not verify(L2, [L1, L3], R, path=0b00)

    def test_promoted_leaf(self):
        """L3 has no sibling at the bottom level and joins one level up."""
        assert verify(L3, [H12], R, path=1)
        assert not verify(L3, [H12], R, path=0)

    def test_internal_node_verifies_at_its_own_height(self):
        assert verify(H12, [L3], R)

    @pytest.mark.parametrize("proof", [[], [L2], [L2, L3], [L3, L2], [H12], [R]])
    def test_forged_leaf_rejected(self, proof):
        forged = _h("forged")
        for path in range(4):
            assert not verify(forged, proof, R, path=path)

    def test_sorted_pair_forgery_does_not_apply(self):
        """With sorted hashing, H(L3, H12) would equal R. Here it must not."""
        assert combine(L3, H12) != R
        assert not verify(H12, [L3], R, path=1)


class TestVerifyUntrustedInput:
    """Malformed input is an ordinary False, never an exception."""

    def test_empty_proof_single_leaf(self):
        assert verify(L1, [], L1)
        assert not verify(L1, [], L2)

    def test_path_bits_beyond_proof(self):
        assert not verify(L1, [], L1, path=1)
        assert not verify(L1, [L2, L3], R, path=0b100)

    def test_negative_or_boolean_path(self):
        assert not verify(L1, [L2, L3], R, path=-1)
        assert not verify(L1, [L2, L3], R, path=True)

    def test_non_hex_values(self):
        assert not verify("zz", [L2, L3], R)
        assert not verify(L1, ["not-a-hash", L3], R)
        assert not verify(L1, [L2, L3], "short")

    def test_wrong_types(self):
        assert not verify(L1, None, R)
        assert not verify(L1, [123, L3], R)
        assert not verify(None, [L2, L3], R)

    def test_string_proof_is_not_iterated_into_a_match(self):
        assert not verify(L1, L2, R)

    def test_overlong_proof(self):
        assert not verify(L1, [L2, L3, L1], R)


class TestTreeBuilding:
    """Off-core roots and proofs."""

    @pytest.mark.parametrize("size", [1, 2, 3, 4, 5, 7, 8, 9])
    def test_every_leaf_proves(self, size):
        leaves = [_h(f"leaf-{i}") for i in range(size)]
        root = build_root(leaves)
        for index, leaf in enumerate(leaves):
            assert verify_proof(leaf, build_proof(leaves, index), root)

    def test_proof_for_three_leaf_tree(self):
        proof = build_proof([L1, L2, L3], 2)
        assert proof.siblings == [H12]
        assert proof.path == 1

    def test_levels_shape(self):
        levels = build_levels([L1, L2, L3])
        assert [len(level) for level in levels] == [3, 2, 1]
        assert levels[1] == [H12, L3]

    def test_empty_tree_rejected(self):
        with pytest.raises(ValueError):
            build_levels([])

    def test_index_out_of_range(self):
        with pytest.raises(IndexError):
            build_proof([L1, L2], 2)

    def test_leaf_order_changes_root(self):
        assert build_root([L1, L2]) != build_root([L2, L1])

    @pytest.mark.parametrize("count,depth", [(1, 0), (2, 1), (3, 2), (4, 2), (5, 3), (8, 3)])
    def test_tree_depth(self, count, depth):
        assert tree_depth(count) == depth
        assert len(build_levels([_h(str(i)) for i in range(count)])) - 1 == depth
