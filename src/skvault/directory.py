"""
Guardian directory — the committed root over the guardian set.

The vault only ever holds a single 32-byte root. The guardian list itself
lives off-core in a ``GuardianRoster`` (usually a YAML file kept by the
owner), which is where leaves, roots and proofs get assembled.

Roster format:
    guardians:
      - identity: "0x1111111111111111111111111111111111111111"
        delay: 3d
        label: sister
      - identity: "0x2222222222222222222222222222222222222222"
        delay: 30d
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Optional

import yaml

from .clock import parse_duration
from .merkle import build_proof, build_root
from .models import GuardianDeclaration, MerkleProof, normalize_hash, normalize_identity

logger = logging.getLogger("skvault.directory")

_UINT256_LIMIT = 1 << 256


def guardian_leaf(identity: str, delay: int) -> str:
    """Leaf hash committing to one guardian declaration.

    ``SHA256(SHA256(address padded to 32 bytes || delay as uint256))``.
    The inner hash keeps leaf preimages apart from 64-byte node preimages.

    Args:
        identity: Guardian address.
        delay: Inactivity delay in seconds.

    Returns:
        str: Leaf hash (hex).

    Raises:
        ValueError: If the identity is malformed or delay is out of range.
    """
    address = bytes.fromhex(normalize_identity(identity)[2:])
    if isinstance(delay, bool) or not isinstance(delay, int) or not 0 <= delay < _UINT256_LIMIT:
        raise ValueError(f"delay must be an unsigned 256-bit integer, got {delay!r}")
    encoded = address.rjust(32, b"\x00") + delay.to_bytes(32, "big")
    return hashlib.sha256(hashlib.sha256(encoded).digest()).hexdigest()


class GuardianDirectory:
    """Holds the live guardian root.

    Only the vault's owner gate may call ``set_root``; the directory
    itself does not know who the owner is.
    """

    def __init__(self, root: str = "0" * 64) -> None:
        self.root = normalize_hash(root)

    @staticmethod
    def leaf(identity: str, delay: int) -> str:
        return guardian_leaf(identity, delay)

    def set_root(self, new_root: str) -> str:
        """Replace the root and return the previous one."""
        previous = self.root
        self.root = normalize_hash(new_root)
        logger.info("Guardian root %s -> %s", previous[:12], self.root[:12])
        return previous


class GuardianRoster:
    """Off-core guardian declarations and the tree they form.

    Leaf order is declaration order; changing the order changes the root.

    Args:
        guardians: Initial declarations.
    """

    def __init__(self, guardians: Optional[list[GuardianDeclaration]] = None) -> None:
        self.guardians: list[GuardianDeclaration] = list(guardians or [])

    def add(self, identity: str, delay: int | str, label: str = "") -> GuardianDeclaration:
        """Append a guardian declaration."""
        decl = GuardianDeclaration(identity=identity, delay=parse_duration(delay), label=label)
        self.guardians.append(decl)
        return decl

    def leaves(self) -> list[str]:
        return [guardian_leaf(g.identity, g.delay) for g in self.guardians]

    def root(self) -> str:
        """Merkle root over every declared guardian.

        Raises:
            ValueError: If the roster is empty.
        """
        return build_root(self.leaves())

    def find(self, identity: str, delay: Optional[int] = None) -> int:
        """Index of a guardian, optionally pinned to one delay.

        Raises:
            KeyError: If no matching declaration exists.
        """
        target = normalize_identity(identity)
        for index, decl in enumerate(self.guardians):
            if decl.identity == target and (delay is None or decl.delay == delay):
                return index
        raise KeyError(f"guardian {target} not in roster")

    def proof_for(self, identity: str, delay: Optional[int] = None) -> tuple[GuardianDeclaration, MerkleProof]:
        """Declaration and inclusion proof for one guardian.

        Raises:
            KeyError: If the guardian is not declared.
        """
        index = self.find(identity, delay)
        return self.guardians[index], build_proof(self.leaves(), index)

    # --- YAML persistence ---

    @classmethod
    def load(cls, path: Path) -> "GuardianRoster":
        """Read a roster file.

        Raises:
            ValueError: If the file is not a valid roster.
        """
        try:
            data = yaml.safe_load(Path(path).read_text()) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid roster file {path}: {exc}") from exc

        entries = data.get("guardians", []) if isinstance(data, dict) else None
        if not isinstance(entries, list):
            raise ValueError(f"Roster {path} must contain a 'guardians' list")

        roster = cls()
        for entry in entries:
            if not isinstance(entry, dict) or "identity" not in entry or "delay" not in entry:
                raise ValueError(f"Roster entry needs identity and delay: {entry!r}")
            roster.add(entry["identity"], entry["delay"], entry.get("label", ""))
        logger.debug("Loaded %d guardians from %s", len(roster.guardians), path)
        return roster

    def save(self, path: Path) -> None:
        """Write the roster as YAML."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "guardians": [
                {"identity": g.identity, "delay": g.delay, **({"label": g.label} if g.label else {})}
                for g in self.guardians
            ]
        }
        path.write_text(yaml.safe_dump(data, default_flow_style=False, sort_keys=False))
