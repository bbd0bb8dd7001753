"""Circle FRI: folding, proving, and the native reference verifier."""

from typing import List

import galois

from primitives.circle import circle_domain, circle_twiddles, fold_line_xs, line_domain_xs, line_twiddles
from primitives.field import FF, QM31
from primitives.merkle_tree import MerkleTree
from primitives.twiddle_merkle_tree import TwiddleMerkleTree, twiddle_merkle_tree_root
from protocol.channel import Channel
from protocol.proof import FriProof, check_logn, validate_proof_structure

# --- Type Aliases ---

Evaluation = List[QM31]


# --- FRI Protocol ---

class FRI:
    """Folding steps. Each halves the evaluation vector."""

    @staticmethod
    def fold_circle(evals: Evaluation, alpha: QM31, logn: int) -> Evaluation:
        """Fold circle evaluations onto the line: pairs (k, k + N/2) share x."""
        half = len(evals) // 2
        inv_ys = circle_twiddles(logn)
        return [
            (evals[k] + evals[k + half]) + alpha * (evals[k] - evals[k + half]) * inv_ys[k]
            for k in range(half)
        ]

    @staticmethod
    def fold_line(evals: Evaluation, alpha: QM31, xs: List[int]) -> Evaluation:
        """Fold line evaluations: pairs (k, k + M/2) have opposite x."""
        half = len(evals) // 2
        inv_xs = line_twiddles(xs)
        return [
            (evals[k] + evals[k + half]) + alpha * (evals[k] - evals[k + half]) * inv_xs[k]
            for k in range(half)
        ]


def evaluate_x_polynomial(coeffs: List[int], logn: int) -> Evaluation:
    """Evaluate sum(coeffs[i] * x^i) at the x-coordinate of every domain point."""
    poly = galois.Poly(list(reversed(coeffs)), field=FF)
    xs = FF([p.x for p in circle_domain(logn)])
    return [QM31.from_m31(int(v)) for v in poly(xs)]


# --- Prover ---

def fri_prove(channel: Channel, evaluation: Evaluation) -> FriProof:
    """Commit to every folding layer and open them at the drawn queries.

    Folds logn - 1 times, so the last layer holds two values.
    """
    n = len(evaluation)
    if n == 0 or n & (n - 1):
        raise ValueError(f"evaluation size must be a power of two, got {n}")
    logn = n.bit_length() - 1
    check_logn(logn)
    n_layers = logn - 1

    trees: List[MerkleTree] = []
    current = list(evaluation)
    xs: List[int] = []
    for i in range(n_layers):
        tree = MerkleTree(current)
        trees.append(tree)
        channel.absorb_commitment(tree.root)
        alpha, _ = channel.draw_qm31()
        if i == 0:
            current = FRI.fold_circle(current, alpha, logn)
            xs = line_domain_xs(logn)
        else:
            current = FRI.fold_line(current, alpha, xs)
            xs = fold_line_xs(xs)

    channel.absorb_qm31s(current)
    queries, _ = channel.draw_5queries(logn)

    twiddle_tree = TwiddleMerkleTree(logn)
    return FriProof(
        commitments=[t.root for t in trees],
        last_layer=current,
        merkle_proofs=[
            [trees[i].query(q % (1 << (logn - i))) for i in range(n_layers)]
            for q in queries
        ],
        twiddle_merkle_proofs=[twiddle_tree.query(q) for q in queries],
    )


# --- Native Verifier ---

def fri_verify(channel: Channel, logn: int, proof: FriProof) -> bool:
    """Check a proof against a channel in the prover's starting state.

    Replays the transcript, checks every layer and twiddle opening, and
    requires the last layer to be constant.
    """
    check_logn(logn)
    errors = validate_proof_structure(proof, logn)
    if errors:
        for e in errors:
            print(f"ERROR: {e}")
        return False

    for commitment in proof.commitments:
        channel.absorb_commitment(commitment)
        channel.draw_qm31()
    channel.absorb_qm31s(proof.last_layer)
    queries, _ = channel.draw_5queries(logn)

    for q, per_layer in zip(queries, proof.merkle_proofs):
        for i, opening in enumerate(per_layer):
            height = logn - i
            if not MerkleTree.verify(proof.commitments[i], height, q % (1 << height), opening):
                print(f"ERROR: Layer {i} Merkle opening failed for query {q}")
                return False

    twiddle_root = twiddle_merkle_tree_root(logn)
    for q, opening in zip(queries, proof.twiddle_merkle_proofs):
        if not TwiddleMerkleTree.verify(twiddle_root, logn, q, opening):
            print(f"ERROR: Twiddle Merkle opening failed for query {q}")
            return False

    if any(v != proof.last_layer[0] for v in proof.last_layer):
        print("ERROR: Last layer is not constant")
        return False

    return True
