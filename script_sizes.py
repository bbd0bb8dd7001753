#!/usr/bin/env python3
"""Report the size of every FRI verification program and run each one.

Proves the low-degree polynomial x^4 + 1 (or the coefficients given with
--coeffs) over a domain of size 2^logn, then composes each verifier piece
with its witness and executes it.

Run with: python script_sizes.py --logn 5
"""

import argparse
import hashlib
import sys
from typing import List, Tuple

from primitives.script import OP_NUMEQUALVERIFY, OP_TRUE, Script, execute_script
from primitives.twiddle_merkle_tree import twiddle_merkle_tree_root
from primitives.u31 import drop_items, qm31_equalverify, qm31_push
from protocol.channel import N_QUERIES, Channel
from protocol.fri import evaluate_x_polynomial, fri_prove, fri_verify
from protocol.fri_gadget import FRIGadget
from protocol.proof import FriProof, to_bytes

DEFAULT_SEED = hashlib.sha256(b"fri-script-verifier").digest()


def fiat_shamir_program(seed: bytes, logn: int, proof: FriProof) -> Script:
    """Witness + transcript replay, checked against the natively derived values."""
    channel = Channel(seed)
    alphas = []
    for c in proof.commitments:
        channel.absorb_commitment(c)
        alphas.append(channel.draw_qm31()[0])
    channel.absorb_qm31s(proof.last_layer)
    queries, _ = channel.draw_5queries(logn)

    script = Script(
        FRIGadget.push_fiat_shamir_input(Channel(seed), logn, proof),
        FRIGadget.check_fiat_shamir(seed, logn, proof.n_layers),
    )
    for alpha in alphas:
        script.push([qm31_push(alpha), qm31_equalverify()])
    for q in queries:
        script.push([q, OP_NUMEQUALVERIFY])
    script.push(OP_TRUE)
    return script


def twiddle_program(logn: int, queries: List[int], proof: FriProof) -> Script:
    return Script(
        FRIGadget.push_twiddle_merkle_tree_proof(proof.twiddle_merkle_proofs),
        queries,
        FRIGadget.check_twiddle_merkle_tree_proof(logn, twiddle_merkle_tree_root(logn)),
        drop_items(2 * N_QUERIES),
        OP_TRUE,
    )


def single_query_program(logn: int, idx: int, query: int, proof: FriProof) -> Script:
    return Script(
        FRIGadget.push_single_query_merkle_tree_proof(idx, proof),
        proof.commitments,
        query,
        FRIGadget.check_single_query_merkle_tree_proof(logn, proof.n_layers),
        drop_items(4 * proof.n_layers),
        OP_TRUE,
    )


def drawn_queries(seed: bytes, logn: int, proof: FriProof) -> List[int]:
    channel = Channel(seed)
    for c in proof.commitments:
        channel.absorb_commitment(c)
        channel.draw_qm31()
    channel.absorb_qm31s(proof.last_layer)
    return channel.draw_5queries(logn)[0]


def run(seed: bytes, logn: int, coeffs: List[int]) -> List[Tuple[str, int, bool]]:
    """Build every program and return (name, verifier bytes, executed ok)."""
    proof = fri_prove(Channel(seed), evaluate_x_polynomial(coeffs, logn))
    queries = drawn_queries(seed, logn, proof)

    results = []
    checker = FRIGadget.check_fiat_shamir(seed, logn, proof.n_layers)
    info = execute_script(fiat_shamir_program(seed, logn, proof))
    results.append(("check_fiat_shamir", len(checker), info.success))

    checker = FRIGadget.check_twiddle_merkle_tree_proof(logn, twiddle_merkle_tree_root(logn))
    info = execute_script(twiddle_program(logn, queries, proof))
    results.append(("check_twiddle_merkle_tree_proof", len(checker), info.success))

    checker = FRIGadget.check_single_query_merkle_tree_proof(logn, proof.n_layers)
    for idx, q in enumerate(queries):
        info = execute_script(single_query_program(logn, idx, q, proof))
        results.append((f"check_single_query_merkle_tree_proof[{idx}]", len(checker), info.success))

    return results


def main():
    parser = argparse.ArgumentParser(
        description="Report FRI script verifier sizes and execution results"
    )
    parser.add_argument(
        "--logn",
        type=int,
        default=5,
        help="log2 of the evaluation domain size (default: 5)",
    )
    parser.add_argument(
        "--seed-hex",
        default=DEFAULT_SEED.hex(),
        help="32-byte channel seed as hex",
    )
    parser.add_argument(
        "--coeffs",
        type=int,
        nargs="+",
        default=[1, 0, 0, 0, 1],
        help="polynomial in x, lowest degree first (default: x^4 + 1)",
    )
    args = parser.parse_args()

    try:
        seed = bytes.fromhex(args.seed_hex)
    except ValueError as e:
        print(f"Error: invalid seed hex: {e}", file=sys.stderr)
        return 1
    if len(seed) != 32:
        print(f"Error: seed must be 32 bytes, got {len(seed)}", file=sys.stderr)
        return 1

    proof = fri_prove(Channel(seed), evaluate_x_polynomial(args.coeffs, args.logn))
    print(f"Proof: {proof.n_layers} layers, {len(to_bytes(proof, args.logn))} bytes")
    print(f"Native verification: {'ok' if fri_verify(Channel(seed), args.logn, proof) else 'FAILED'}")

    results = run(seed, args.logn, args.coeffs)
    print(f"\nlogn = {args.logn}")
    for name, size, ok in results:
        print(f"  {name}: {size} bytes, {'ok' if ok else 'FAILED'}")

    return 0 if all(ok for _, _, ok in results) else 1


if __name__ == "__main__":
    sys.exit(main())
