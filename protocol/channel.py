"""
Fiat-Shamir channel over SHA-256.

The channel state is a single 32-byte digest. Absorbing chains the input into
the state; drawing derives an extraction digest from the state and advances
the state, so consecutive draws are independent:

    absorb(x):  state <- H(state || x)
    draw:       digest = H(state || 0x00),  state <- H(state)

QM31 values are absorbed through their pack_qm31 commitment, which is what
the script side can compute from stack items.
"""

import hashlib
from typing import List, Tuple

from primitives.commitment import HASH_SIZE, pack_qm31
from primitives.extraction import ExtractionHint, extract_5m31, extract_qm31
from primitives.field import QM31

N_QUERIES = 5

DRAW_DOMAIN_BYTE = b"\x00"


class Channel:
    """Prover/verifier transcript producing challenges and query positions.

    Every draw also returns the ExtractionHint the script verifier needs to
    reproduce the same value.
    """

    def __init__(self, seed: bytes):
        if len(seed) != HASH_SIZE:
            raise ValueError(f"channel seed must be {HASH_SIZE} bytes, got {len(seed)}")
        self.state = bytes(seed)

    def absorb_commitment(self, commitment: bytes) -> None:
        if len(commitment) != HASH_SIZE:
            raise ValueError(f"commitment must be {HASH_SIZE} bytes, got {len(commitment)}")
        self.state = hashlib.sha256(self.state + commitment).digest()

    def absorb_qm31(self, value: QM31) -> None:
        self.state = hashlib.sha256(self.state + pack_qm31(value)).digest()

    def absorb_qm31s(self, values: List[QM31]) -> None:
        for v in values:
            self.absorb_qm31(v)

    def _next_digest(self) -> bytes:
        digest = hashlib.sha256(self.state + DRAW_DOMAIN_BYTE).digest()
        self.state = hashlib.sha256(self.state).digest()
        return digest

    def draw_qm31(self) -> Tuple[QM31, ExtractionHint]:
        return extract_qm31(self._next_digest())

    def draw_5queries(self, logn: int) -> Tuple[List[int], ExtractionHint]:
        """Five positions in [0, 2^logn) taken from the low bits of five words."""
        if not 1 <= logn <= 31:
            raise ValueError(f"query domain logn must be in [1, 31], got {logn}")
        values, hint = extract_5m31(self._next_digest())
        mask = (1 << logn) - 1
        return [v & mask for v in values], hint
