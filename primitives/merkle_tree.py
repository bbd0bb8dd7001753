"""Binary SHA-256 Merkle tree over QM31 leaves, with its script verifier."""

from dataclasses import dataclass, field
from typing import List

from primitives.commitment import CommitmentGadget, pack_qm31, sha256
from primitives.field import QM31
from primitives.script import (
    OP_CAT,
    OP_EQUALVERIFY,
    OP_FROMALTSTACK,
    OP_ROLL,
    OP_SHA256,
    Script,
    pull_hint,
)
from primitives.u31 import qm31_copy, qm31_push

# --- Type Aliases ---

MerkleRoot = bytes


# --- Data Classes ---

@dataclass
class MerkleProof:
    """Opening of one leaf.

    Attributes:
        leaf: The QM31 value stored at the queried position
        siblings: Sibling hashes from the leaf level up to just below the root
    """
    leaf: QM31
    siblings: List[bytes] = field(default_factory=list)

    def push(self) -> Script:
        """Witness layout read by MerkleTreeGadget.query_and_verify."""
        return Script(qm31_push(self.leaf), self.siblings)


def hash_node(left: bytes, right: bytes) -> bytes:
    return sha256(left + right)


# --- Merkle Tree ---

class MerkleTree:
    """Merkle tree whose leaves are pack_qm31 commitments."""

    def __init__(self, leaves: List[QM31]):
        n = len(leaves)
        if n == 0 or n & (n - 1):
            raise ValueError(f"leaf count must be a power of two, got {n}")

        self.leaves = list(leaves)
        self.layers: List[List[bytes]] = [[pack_qm31(v) for v in self.leaves]]
        while len(self.layers[-1]) > 1:
            below = self.layers[-1]
            self.layers.append([
                hash_node(below[2 * i], below[2 * i + 1])
                for i in range(len(below) // 2)
            ])

    @property
    def height(self) -> int:
        return len(self.layers) - 1

    @property
    def root(self) -> MerkleRoot:
        return self.layers[-1][0]

    def query(self, pos: int) -> MerkleProof:
        if not 0 <= pos < len(self.leaves):
            raise ValueError(f"Query index {pos} out of range [0, {len(self.leaves)})")
        siblings = []
        idx = pos
        for layer in self.layers[:-1]:
            siblings.append(layer[idx ^ 1])
            idx >>= 1
        return MerkleProof(leaf=self.leaves[pos], siblings=siblings)

    @staticmethod
    def verify(root: MerkleRoot, height: int, pos: int, proof: MerkleProof) -> bool:
        """Recompute the root from an opening."""
        if len(proof.siblings) != height or not 0 <= pos < (1 << height):
            return False
        h = pack_qm31(proof.leaf)
        for sibling in proof.siblings:
            h = hash_node(sibling, h) if pos & 1 else hash_node(h, sibling)
            pos >>= 1
        return h == root


# --- Script Verifier ---

class MerkleTreeGadget:

    @staticmethod
    def query_and_verify(height: int) -> Script:
        """[root] with the position bits on the alt stack -> [leaf].

        The alt stack must hold `height` position bits with the least
        significant bit popped first. The opening is pulled from the hints.
        """
        if height < 1:
            raise ValueError(f"tree height must be at least 1, got {height}")
        script = Script(
            [pull_hint()] * 4,
            qm31_copy(),
            CommitmentGadget.commit_qm31(),
        )
        for _ in range(height):
            script.push([pull_hint(), OP_FROMALTSTACK, OP_ROLL, OP_CAT, OP_SHA256])
        script.push([5, OP_ROLL, OP_EQUALVERIFY])
        return script
