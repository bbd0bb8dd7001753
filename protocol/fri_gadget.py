"""Script verifier for FRI proofs.

Every check is split into a witness builder (push_*) that runs natively and
emits the pushes a program consumes, and a program emitter (check_*) whose
shape depends only on public parameters. A complete program is the witness
script followed by the check script.

Hints are always pushed first, so they sit at the bottom of the stack where
pull_hint finds them in push order.
"""

from typing import List, Optional

from primitives.extraction import ExtractionHint
from primitives.merkle_tree import MerkleRoot, MerkleTreeGadget
from primitives.script import OP_DROP, OP_FROMALTSTACK, OP_ROLL, OP_TOALTSTACK, Script
from primitives.twiddle_merkle_tree import TwiddleMerkleProof, TwiddleMerkleTreeGadget
from primitives.u31 import (
    copy_bits_to_altstack,
    drop_items,
    limb_to_be_bits,
    qm31_fromaltstack,
    qm31_push,
    qm31_toaltstack,
)
from protocol.channel import N_QUERIES, Channel
from protocol.channel_gadget import ChannelGadget
from protocol.proof import FriProof, check_logn


def _check_n_layers(logn: int, n_layers: int) -> None:
    if not 1 <= n_layers <= logn - 1:
        raise ValueError(f"n_layers must be in [1, {logn - 1}] for logn={logn}, got {n_layers}")


def _check_transcript_shape(logn: int, proof: FriProof) -> None:
    check_logn(logn)
    _check_n_layers(logn, proof.n_layers)
    expected = 1 << (logn - proof.n_layers)
    if len(proof.last_layer) != expected:
        raise ValueError(
            f"last layer has {len(proof.last_layer)} values, expected {expected} "
            f"for logn={logn} and {proof.n_layers} layers"
        )


class FRIGadget:

    # --- Fiat-Shamir ---

    @staticmethod
    def fiat_shamir_hints(channel: Channel, logn: int, proof: FriProof) -> List[ExtractionHint]:
        """Replay the proof transcript on `channel` and collect every draw's hint."""
        _check_transcript_shape(logn, proof)
        hints = []
        for commitment in proof.commitments:
            channel.absorb_commitment(commitment)
            _, hint = channel.draw_qm31()
            hints.append(hint)
        channel.absorb_qm31s(proof.last_layer)
        _, hint = channel.draw_5queries(logn)
        hints.append(hint)
        return hints

    @staticmethod
    def push_fiat_shamir_input(channel: Channel, logn: int, proof: FriProof) -> Script:
        """Witness for check_fiat_shamir.

        Pushes the draw hints in draw order, then the last layer and the
        commitments, each reversed so the first one absorbed ends on top.
        """
        hints = FRIGadget.fiat_shamir_hints(channel, logn, proof)
        return Script(
            [h.push() for h in hints],
            [qm31_push(v) for v in reversed(proof.last_layer)],
            list(reversed(proof.commitments)),
        )

    @staticmethod
    def check_fiat_shamir(seed: bytes, logn: int, n_layers: int) -> Script:
        """Replay the transcript from the seed.

        Leaves [q4, ..., q0, alpha_{n_layers-1}, ..., alpha_0] with alpha_0 on
        top. The program only derives the values; callers compare them.
        """
        check_logn(logn)
        _check_n_layers(logn, n_layers)
        script = Script(ChannelGadget.new(seed))
        for _ in range(n_layers):
            script.push([
                ChannelGadget.absorb_commitment(),
                ChannelGadget.draw_element_using_hint(),
                qm31_toaltstack(),
            ])
        for _ in range(1 << (logn - n_layers)):
            script.push(ChannelGadget.absorb_qm31())
        script.push(ChannelGadget.draw_5queries_using_hint(logn))
        script.push([N_QUERIES, OP_ROLL, OP_DROP])
        for _ in range(n_layers):
            script.push(qm31_fromaltstack())
        return script

    # --- Twiddle Table ---

    @staticmethod
    def push_twiddle_merkle_tree_proof(twiddle_merkle_proofs: List[TwiddleMerkleProof]) -> Script:
        """Hints for check_twiddle_merkle_tree_proof, first query first."""
        if len(twiddle_merkle_proofs) != N_QUERIES:
            raise ValueError(
                f"expected {N_QUERIES} twiddle openings, got {len(twiddle_merkle_proofs)}"
            )
        return Script([p.push() for p in twiddle_merkle_proofs])

    @staticmethod
    def check_twiddle_merkle_tree_proof(logn: int, root: MerkleRoot) -> Script:
        """[q0, q1, q2, q3, q4] -> [l0, l1] per query, query 4's leaf on top.

        Query 0 is deepest on input. Each position is a full domain index.
        """
        check_logn(logn)
        script = Script([OP_TOALTSTACK] * N_QUERIES)
        for _ in range(N_QUERIES):
            script.push([root, OP_FROMALTSTACK, TwiddleMerkleTreeGadget.query_and_verify(logn)])
        return script

    # --- Layer Openings ---

    @staticmethod
    def push_single_query_merkle_tree_proof(idx: int, proof: FriProof) -> Script:
        """Hints for check_single_query_merkle_tree_proof, most-folded tree first."""
        if not 0 <= idx < len(proof.merkle_proofs):
            raise ValueError(f"query index {idx} out of range [0, {len(proof.merkle_proofs)})")
        return Script([p.push() for p in reversed(proof.merkle_proofs[idx])])

    @staticmethod
    def check_single_query_merkle_tree_proof(logn: int, n_layers: Optional[int] = None) -> Script:
        """[root_0, ..., root_{n_layers-1}, q] -> [leaf_0, ..., leaf_{n_layers-1}].

        Layer i is opened at q mod 2^(logn - i). Root 0 is deepest on input
        and leaf 0 is deepest on output.
        """
        check_logn(logn)
        if n_layers is None:
            n_layers = logn - 1
        _check_n_layers(logn, n_layers)

        script = Script(limb_to_be_bits(logn))
        for height in range(logn - n_layers + 1, logn + 1):
            script.push([
                copy_bits_to_altstack(height),
                logn,
                OP_ROLL,
                MerkleTreeGadget.query_and_verify(height),
                qm31_toaltstack(),
            ])
        script.push(drop_items(logn))
        for _ in range(n_layers):
            script.push(qm31_fromaltstack())
        return script
