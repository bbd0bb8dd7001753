"""Tests for the QM31 Merkle tree and the twiddle table tree."""

import random
from typing import Optional

import pytest

from primitives.circle import circle_twiddles
from primitives.merkle_tree import MerkleProof, MerkleTree, MerkleTreeGadget
from primitives.script import OP_NUMEQUALVERIFY, OP_TRUE, Script, execute_script
from primitives.twiddle_merkle_tree import (
    TwiddleMerkleProof,
    TwiddleMerkleTree,
    TwiddleMerkleTreeGadget,
    twiddle_merkle_tree_root,
)
from primitives.u31 import copy_bits_to_altstack, drop_items, limb_to_be_bits, qm31_equalverify, qm31_push
from tests.conftest import random_qm31


def make_tree(height: int, seed: int = 0) -> MerkleTree:
    rng = random.Random(seed)
    return MerkleTree([random_qm31(rng) for _ in range(1 << height)])


def merkle_program(tree: MerkleTree, pos: int, proof: MerkleProof, root: Optional[bytes] = None) -> Script:
    """Open `pos` with the gadget and compare the leaf to the native one."""
    h = tree.height
    return Script(
        proof.push(),
        pos, limb_to_be_bits(h), copy_bits_to_altstack(h), drop_items(h),
        tree.root if root is None else root,
        MerkleTreeGadget.query_and_verify(h),
        qm31_push(tree.leaves[pos]),
        qm31_equalverify(),
        OP_TRUE,
    )


class TestMerkleTree:

    def test_rejects_non_power_of_two(self) -> None:
        with pytest.raises(ValueError):
            MerkleTree([])
        with pytest.raises(ValueError):
            MerkleTree([random_qm31(random.Random(0))] * 3)

    @pytest.mark.parametrize("height", [1, 3, 6])
    def test_every_opening_verifies(self, height: int) -> None:
        tree = make_tree(height)
        assert tree.height == height
        for pos in range(1 << height):
            proof = tree.query(pos)
            assert len(proof.siblings) == height
            assert MerkleTree.verify(tree.root, height, pos, proof)

    def test_wrong_position_or_leaf_rejected(self) -> None:
        tree = make_tree(4)
        proof = tree.query(5)
        assert not MerkleTree.verify(tree.root, 4, 4, proof)
        assert not MerkleTree.verify(tree.root, 4, 1 << 4, proof)
        assert not MerkleTree.verify(tree.root, 3, 5, proof)
        bad = MerkleProof(leaf=tree.leaves[4], siblings=proof.siblings)
        assert not MerkleTree.verify(tree.root, 4, 5, bad)

    def test_query_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            make_tree(2).query(4)


class TestMerkleTreeGadget:

    @pytest.mark.parametrize("height", [1, 2, 5])
    def test_gadget_matches_native(self, height: int) -> None:
        tree = make_tree(height, seed=height)
        for pos in {0, (1 << height) - 1, (1 << height) // 2}:
            assert execute_script(merkle_program(tree, pos, tree.query(pos))).success

    def test_wrong_root_rejected(self) -> None:
        tree = make_tree(4)
        other = make_tree(4, seed=99)
        info = execute_script(merkle_program(tree, 3, tree.query(3), root=other.root))
        assert not info.success
        assert "OP_EQUALVERIFY" in info.error

    def test_tampered_sibling_rejected(self) -> None:
        tree = make_tree(4)
        proof = tree.query(6)
        proof.siblings[2] = bytes(32)
        assert not execute_script(merkle_program(tree, 6, proof)).success

    def test_proof_for_other_position_rejected(self) -> None:
        tree = make_tree(4)
        assert not execute_script(merkle_program(tree, 6, tree.query(7))).success

    def test_height_checked(self) -> None:
        with pytest.raises(ValueError):
            MerkleTreeGadget.query_and_verify(0)


class TestTwiddleMerkleTree:

    def test_leaves_hold_position_twiddles(self) -> None:
        tree = TwiddleMerkleTree(5)
        twiddles = circle_twiddles(5)
        assert tree.height == 4
        assert len(tree.leaves) == 16
        for q in range(32):
            assert tree.query(q).elements[q & 1] == twiddles[q]

    @pytest.mark.parametrize("logn", [2, 4, 7])
    def test_openings_verify(self, logn: int) -> None:
        tree = TwiddleMerkleTree(logn)
        for q in range(1 << logn):
            assert TwiddleMerkleTree.verify(tree.root, logn, q, tree.query(q))

    def test_root_is_cached(self) -> None:
        assert twiddle_merkle_tree_root(6) == TwiddleMerkleTree(6).root
        assert twiddle_merkle_tree_root(6) is twiddle_merkle_tree_root(6)
        assert twiddle_merkle_tree_root(6) != twiddle_merkle_tree_root(7)

    def test_tampered_leaf_rejected(self) -> None:
        tree = TwiddleMerkleTree(5)
        proof = tree.query(9)
        bad = TwiddleMerkleProof(elements=(proof.elements[0] + 1, proof.elements[1]), siblings=proof.siblings)
        assert not TwiddleMerkleTree.verify(tree.root, 5, 9, bad)

    def test_logn_checked(self) -> None:
        with pytest.raises(ValueError):
            TwiddleMerkleTree(1)
        with pytest.raises(ValueError):
            TwiddleMerkleTreeGadget.query_and_verify(31)


class TestTwiddleMerkleTreeGadget:

    @staticmethod
    def program(logn: int, q: int, proof: TwiddleMerkleProof, root: bytes) -> Script:
        return Script(
            proof.push(),
            root, q,
            TwiddleMerkleTreeGadget.query_and_verify(logn),
            proof.elements[1], OP_NUMEQUALVERIFY,
            proof.elements[0], OP_NUMEQUALVERIFY,
            OP_TRUE,
        )

    @pytest.mark.parametrize("logn", [2, 5, 8])
    def test_gadget_matches_native(self, logn: int) -> None:
        tree = TwiddleMerkleTree(logn)
        for q in {0, 1, (1 << logn) - 1, (1 << logn) // 3}:
            assert execute_script(self.program(logn, q, tree.query(q), tree.root)).success

    def test_position_out_of_range_rejected(self) -> None:
        tree = TwiddleMerkleTree(5)
        info = execute_script(self.program(5, 32, tree.query(31), tree.root))
        assert not info.success
        assert "OP_VERIFY" in info.error

    def test_opening_for_other_leaf_rejected(self) -> None:
        tree = TwiddleMerkleTree(5)
        assert not execute_script(self.program(5, 4, tree.query(6), tree.root)).success

    def test_tampered_twiddle_rejected(self) -> None:
        tree = TwiddleMerkleTree(5)
        proof = tree.query(10)
        bad = TwiddleMerkleProof(elements=(proof.elements[0], proof.elements[1] ^ 1), siblings=proof.siblings)
        assert not execute_script(self.program(5, 10, bad, tree.root)).success
