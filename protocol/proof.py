"""FRI proof data structure and serialization."""

import json
import struct
from dataclasses import dataclass, field
from typing import Any

from primitives.commitment import HASH_SIZE
from primitives.field import QM31
from primitives.merkle_tree import MerkleProof
from primitives.twiddle_merkle_tree import TwiddleMerkleProof
from primitives.u31 import MAX_LIMB_BITS
from protocol.channel import N_QUERIES

QM31_BYTES = 16
TWIDDLE_LEAF_BYTES = 8


def check_logn(logn: int) -> None:
    """Supported domain sizes are 2^2 to 2^30; positions must fit one script number."""
    if not 2 <= logn <= MAX_LIMB_BITS:
        raise ValueError(f"logn must be in [2, {MAX_LIMB_BITS}], got {logn}")


# --- Proof Data Structure ---

@dataclass
class FriProof:
    """Non-interactive FRI proof for a single evaluation vector.

    Attributes:
        commitments: Merkle root of each folding layer, layer 0 first
        last_layer: Evaluations of the final folded layer (2^(logn - n_layers) values)
        merkle_proofs: merkle_proofs[q][i] opens layer i at query q's index
                       q mod 2^(logn - i)
        twiddle_merkle_proofs: One twiddle table opening per query, at q >> 1
    """
    commitments: list[bytes] = field(default_factory=list)
    last_layer: list[QM31] = field(default_factory=list)
    merkle_proofs: list[list[MerkleProof]] = field(default_factory=list)
    twiddle_merkle_proofs: list[TwiddleMerkleProof] = field(default_factory=list)

    @property
    def n_layers(self) -> int:
        return len(self.commitments)


# --- Structure Validation ---

def validate_proof_structure(proof: FriProof, logn: int) -> list[str]:
    """Validate that proof shapes match a domain of size 2^logn."""
    errors = []
    n_layers = proof.n_layers

    if not 1 <= n_layers <= logn - 1:
        errors.append(f"Expected between 1 and {logn - 1} commitments, got {n_layers}")

    for i, c in enumerate(proof.commitments):
        if len(c) != HASH_SIZE:
            errors.append(f"Commitment {i} is {len(c)} bytes, expected {HASH_SIZE}")

    expected_last = 1 << max(logn - n_layers, 0)
    if len(proof.last_layer) != expected_last:
        errors.append(f"Last layer has {len(proof.last_layer)} values, expected {expected_last}")

    if len(proof.merkle_proofs) != N_QUERIES:
        errors.append(f"Expected {N_QUERIES} query openings, got {len(proof.merkle_proofs)}")
    for q, per_layer in enumerate(proof.merkle_proofs):
        if len(per_layer) != n_layers:
            errors.append(f"Query {q} opens {len(per_layer)} layers, expected {n_layers}")
            continue
        for i, p in enumerate(per_layer):
            if len(p.siblings) != logn - i:
                errors.append(
                    f"Query {q} layer {i} has {len(p.siblings)} siblings, expected {logn - i}"
                )

    if len(proof.twiddle_merkle_proofs) != N_QUERIES:
        errors.append(
            f"Expected {N_QUERIES} twiddle openings, got {len(proof.twiddle_merkle_proofs)}"
        )
    for q, tp in enumerate(proof.twiddle_merkle_proofs):
        if len(tp.siblings) != logn - 1:
            errors.append(
                f"Twiddle opening {q} has {len(tp.siblings)} siblings, expected {logn - 1}"
            )

    return errors


# --- Binary Serialization ---

def _qm31_to_bytes(v: QM31) -> bytes:
    return struct.pack("<4I", *v.coords())


def _qm31_from_bytes(data: bytes) -> QM31:
    return QM31(*struct.unpack("<4I", data))


def proof_size(logn: int, n_layers: int) -> int:
    """Exact length in bytes of a serialized proof."""
    per_query = sum(QM31_BYTES + (logn - i) * HASH_SIZE for i in range(n_layers))
    per_query += TWIDDLE_LEAF_BYTES + (logn - 1) * HASH_SIZE
    return (
        n_layers * HASH_SIZE
        + (1 << (logn - n_layers)) * QM31_BYTES
        + N_QUERIES * per_query
    )


def to_bytes(proof: FriProof, logn: int) -> bytes:
    """Serialize a proof.

    Layout: commitments, last layer (four LE u32 per value), every query's
    layer openings with the most-folded tree first, then every query's
    twiddle opening.
    """
    errors = validate_proof_structure(proof, logn)
    if errors:
        raise ValueError("Cannot serialize malformed proof: " + "; ".join(errors))

    out = bytearray()
    for c in proof.commitments:
        out.extend(c)
    for v in proof.last_layer:
        out.extend(_qm31_to_bytes(v))
    for per_layer in proof.merkle_proofs:
        for p in reversed(per_layer):
            out.extend(_qm31_to_bytes(p.leaf))
            for s in p.siblings:
                out.extend(s)
    for tp in proof.twiddle_merkle_proofs:
        out.extend(struct.pack("<2I", *tp.elements))
        for s in tp.siblings:
            out.extend(s)
    return bytes(out)


def from_bytes(data: bytes, logn: int, n_layers: int) -> FriProof:
    """Deserialize a proof produced by to_bytes."""
    if not 1 <= n_layers <= logn - 1:
        raise ValueError(f"n_layers must be in [1, {logn - 1}], got {n_layers}")
    expected = proof_size(logn, n_layers)
    if len(data) != expected:
        raise ValueError(f"Proof is {len(data)} bytes, expected {expected}")

    idx = 0

    def take(n: int) -> bytes:
        nonlocal idx
        chunk = data[idx:idx + n]
        idx += n
        return chunk

    proof = FriProof()
    proof.commitments = [take(HASH_SIZE) for _ in range(n_layers)]
    proof.last_layer = [_qm31_from_bytes(take(QM31_BYTES)) for _ in range(1 << (logn - n_layers))]

    for _ in range(N_QUERIES):
        per_layer = []
        for i in reversed(range(n_layers)):
            leaf = _qm31_from_bytes(take(QM31_BYTES))
            siblings = [take(HASH_SIZE) for _ in range(logn - i)]
            per_layer.append(MerkleProof(leaf=leaf, siblings=siblings))
        per_layer.reverse()
        proof.merkle_proofs.append(per_layer)

    for _ in range(N_QUERIES):
        l0, l1 = struct.unpack("<2I", take(TWIDDLE_LEAF_BYTES))
        siblings = [take(HASH_SIZE) for _ in range(logn - 1)]
        proof.twiddle_merkle_proofs.append(TwiddleMerkleProof(elements=(l0, l1), siblings=siblings))

    return proof


# --- JSON Serialization ---

def _qm31_to_json(v: QM31) -> list[str]:
    return [str(c) for c in v.coords()]


def _qm31_from_json(coords: list[Any]) -> QM31:
    return QM31(*(int(c) for c in coords))


def proof_to_json(proof: FriProof, logn: int) -> dict[str, Any]:
    """Convert a proof to a JSON-serializable dictionary."""
    return {
        "logn": logn,
        "commitments": [c.hex() for c in proof.commitments],
        "lastLayer": [_qm31_to_json(v) for v in proof.last_layer],
        "merkleProofs": [
            [
                {"leaf": _qm31_to_json(p.leaf), "siblings": [s.hex() for s in p.siblings]}
                for p in per_layer
            ]
            for per_layer in proof.merkle_proofs
        ],
        "twiddleMerkleProofs": [
            {"elements": [str(e) for e in tp.elements], "siblings": [s.hex() for s in tp.siblings]}
            for tp in proof.twiddle_merkle_proofs
        ],
    }


def proof_from_json(data: dict[str, Any]) -> tuple[FriProof, int]:
    """Rebuild a proof (and its logn) from proof_to_json output."""
    proof = FriProof(
        commitments=[bytes.fromhex(c) for c in data["commitments"]],
        last_layer=[_qm31_from_json(v) for v in data["lastLayer"]],
        merkle_proofs=[
            [
                MerkleProof(
                    leaf=_qm31_from_json(p["leaf"]),
                    siblings=[bytes.fromhex(s) for s in p["siblings"]],
                )
                for p in per_layer
            ]
            for per_layer in data["merkleProofs"]
        ],
        twiddle_merkle_proofs=[
            TwiddleMerkleProof(
                elements=(int(tp["elements"][0]), int(tp["elements"][1])),
                siblings=[bytes.fromhex(s) for s in tp["siblings"]],
            )
            for tp in data["twiddleMerkleProofs"]
        ],
    )
    return proof, int(data["logn"])


def load_proof_from_json(path: str) -> tuple[FriProof, int]:
    """Load a FRI proof from a JSON file."""
    with open(path) as f:
        return proof_from_json(json.load(f))
