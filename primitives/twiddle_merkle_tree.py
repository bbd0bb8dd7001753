"""Merkle commitment to the circle-fold twiddles of a domain.

For a domain of size 2^logn the tree has 2^(logn-1) leaves; leaf j holds the
inverse y-coordinates of positions 2j and 2j+1. A query at domain position q
opens leaf q >> 1, which contains the twiddle of q itself. Leaves are
committed with hash_stack_items([l0, l1]).

Roots depend only on logn and are cached.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from primitives.circle import circle_twiddles
from primitives.commitment import CommitmentGadget, hash_stack_items
from primitives.merkle_tree import MerkleRoot, hash_node
from primitives.script import (
    OP_2DUP,
    OP_CAT,
    OP_DROP,
    OP_EQUALVERIFY,
    OP_FROMALTSTACK,
    OP_ROLL,
    OP_SHA256,
    OP_TOALTSTACK,
    Script,
    pull_hint,
)
from primitives.u31 import MAX_LIMB_BITS, limb_to_be_bits


@dataclass
class TwiddleMerkleProof:
    """Opening of one twiddle leaf (l0, l1) with siblings from the leaf level up."""
    elements: Tuple[int, int]
    siblings: List[bytes] = field(default_factory=list)

    def push(self) -> Script:
        """Witness layout read by TwiddleMerkleTreeGadget.query_and_verify."""
        return Script(self.elements[0], self.elements[1], self.siblings)


class TwiddleMerkleTree:

    def __init__(self, logn: int):
        if not 2 <= logn <= MAX_LIMB_BITS:
            raise ValueError(f"twiddle tree needs logn in [2, {MAX_LIMB_BITS}], got {logn}")
        self.logn = logn
        twiddles = circle_twiddles(logn)
        self.leaves = [(twiddles[2 * j], twiddles[2 * j + 1]) for j in range(len(twiddles) // 2)]
        self.layers: List[List[bytes]] = [[hash_stack_items(list(leaf)) for leaf in self.leaves]]
        while len(self.layers[-1]) > 1:
            below = self.layers[-1]
            self.layers.append([
                hash_node(below[2 * i], below[2 * i + 1])
                for i in range(len(below) // 2)
            ])

    @property
    def height(self) -> int:
        return self.logn - 1

    @property
    def root(self) -> MerkleRoot:
        return self.layers[-1][0]

    def query(self, pos: int) -> TwiddleMerkleProof:
        """Opening for domain position pos in [0, 2^logn)."""
        if not 0 <= pos < (1 << self.logn):
            raise ValueError(f"Query index {pos} out of range [0, {1 << self.logn})")
        idx = pos >> 1
        siblings = []
        for layer in self.layers[:-1]:
            siblings.append(layer[idx ^ 1])
            idx >>= 1
        return TwiddleMerkleProof(elements=self.leaves[pos >> 1], siblings=siblings)

    @staticmethod
    def verify(root: MerkleRoot, logn: int, pos: int, proof: TwiddleMerkleProof) -> bool:
        if len(proof.siblings) != logn - 1 or not 0 <= pos < (1 << logn):
            return False
        idx = pos >> 1
        h = hash_stack_items(list(proof.elements))
        for sibling in proof.siblings:
            h = hash_node(sibling, h) if idx & 1 else hash_node(h, sibling)
            idx >>= 1
        return h == root


_root_cache: Dict[int, MerkleRoot] = {}


def twiddle_merkle_tree_root(logn: int) -> MerkleRoot:
    """Root of the twiddle tree for a domain of size 2^logn."""
    if logn not in _root_cache:
        _root_cache[logn] = TwiddleMerkleTree(logn).root
    return _root_cache[logn]


class TwiddleMerkleTreeGadget:

    @staticmethod
    def query_and_verify(logn: int) -> Script:
        """[root, pos] -> [l0, l1] for a domain position pos in [0, 2^logn).

        The position is range-checked and decomposed into bits; its lowest
        bit selects within the leaf and is dropped before the path walk.
        """
        if not 2 <= logn <= MAX_LIMB_BITS:
            raise ValueError(f"twiddle tree needs logn in [2, {MAX_LIMB_BITS}], got {logn}")
        script = Script(
            limb_to_be_bits(logn),
            OP_DROP,
            pull_hint(),
            pull_hint(),
            OP_2DUP,
            OP_TOALTSTACK,
            OP_TOALTSTACK,
            CommitmentGadget.hash_stack_items(2),
        )
        for _ in range(logn - 1):
            script.push([pull_hint(), 2, OP_ROLL, OP_ROLL, OP_CAT, OP_SHA256])
        script.push([OP_EQUALVERIFY, OP_FROMALTSTACK, OP_FROMALTSTACK])
        return script
