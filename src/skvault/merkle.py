"""
Merkle commitments over the guardian set.

Verification is pure and treats every proof as hostile input: a bad proof
is an ordinary ``False``, never an exception.

Pair hashing is positional, ``H(left || right)``. Operands are never
sorted; orientation travels with the proof as a ``path`` bitfield.

Tree layout (used by whoever assembles proofs off-core):

    R = H(H(L1, L2), L3)
          /        \\
     H(L1, L2)      L3      <- odd node promoted unchanged
      /    \\
    L1      L2

Usage:
    root = build_root([l1, l2, l3])
    proof = build_proof([l1, l2, l3], index=2)
    assert verify(l3, proof.siblings, root, proof.path)
"""

from __future__ import annotations

import hashlib
from typing import Sequence

from .models import MerkleProof, normalize_hash


def hash_bytes(data: bytes) -> str:
    """SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def combine(left: str, right: str) -> str:
    """Hash an ordered pair of nodes.

    Args:
        left: Left child hash (hex).
        right: Right child hash (hex).

    Returns:
        str: Parent hash. ``combine(a, b) != combine(b, a)`` for ``a != b``.
    """
    return hash_bytes(bytes.fromhex(normalize_hash(left)) + bytes.fromhex(normalize_hash(right)))


def verify(leaf: str, proof: Sequence[str], root: str, path: int = 0) -> bool:
    """Decide whether ``leaf`` is committed under ``root``.

    Args:
        leaf: Leaf hash being claimed.
        proof: Sibling hashes, leaf level first.
        root: Committed root.
        path: Orientation bits, one per proof element.

    Returns:
        bool: True only if folding the proof over the leaf reproduces root.
    """
    try:
        node = normalize_hash(leaf)
        target = normalize_hash(root)
        siblings = [normalize_hash(s) for s in proof]
    except (TypeError, ValueError):
        return False

    if isinstance(path, bool) or not isinstance(path, int) or path < 0:
        return False
    if path >> len(siblings):
        # orientation bits beyond the proof: malformed
        return False

    for step, sibling in enumerate(siblings):
        if (path >> step) & 1:
            node = combine(sibling, node)
        else:
            node = combine(node, sibling)
    return node == target


def verify_proof(leaf: str, proof: MerkleProof, root: str) -> bool:
    """verify() for a MerkleProof model."""
    return verify(leaf, proof.siblings, root, proof.path)


# ---------------------------------------------------------------------------
# Off-core tree building
# ---------------------------------------------------------------------------


def build_levels(leaves: Sequence[str]) -> list[list[str]]:
    """Build every level of the tree, leaves first, root last.

    Raises:
        ValueError: If there are no leaves or a leaf is not a hash.
    """
    if not leaves:
        raise ValueError("cannot build a Merkle tree without leaves")

    levels = [[normalize_hash(leaf) for leaf in leaves]]
    while len(levels[-1]) > 1:
        current = levels[-1]
        parents = [combine(current[i], current[i + 1]) for i in range(0, len(current) - 1, 2)]
        if len(current) % 2:
            parents.append(current[-1])
        levels.append(parents)
    return levels


def build_root(leaves: Sequence[str]) -> str:
    """Root hash over ``leaves`` in the given order."""
    return build_levels(leaves)[-1][0]


def build_proof(leaves: Sequence[str], index: int) -> MerkleProof:
    """Inclusion proof for the leaf at ``index``.

    Raises:
        IndexError: If index is outside the leaf list.
    """
    levels = build_levels(leaves)
    if not 0 <= index < len(levels[0]):
        raise IndexError(f"leaf index {index} out of range (0..{len(levels[0]) - 1})")

    siblings: list[str] = []
    path = 0
    for level in levels[:-1]:
        if index % 2:
            path |= 1 << len(siblings)
            siblings.append(level[index - 1])
        elif index + 1 < len(level):
            siblings.append(level[index + 1])
        index //= 2
    return MerkleProof(siblings=siblings, path=path)


def tree_depth(leaf_count: int) -> int:
    """Number of hashing levels above the leaves."""
    depth = 0
    while leaf_count > 1:
        leaf_count = (leaf_count + 1) // 2
        depth += 1
    return depth
