"""Hash commitments to groups of stack items.

Items are committed in their script-number encoding, chained from the top of
the stack downwards:

    hash_stack_items([s0, ..., s_{k-1}])
        = H(n(s0) || H(n(s1) || ... || H(n(s_{k-1}))))

where s_{k-1} is the top item and n() is the minimal script-number encoding.
The script side is a single OP_SHA256 followed by (OP_CAT OP_SHA256) per
remaining item, so it consumes exactly the items it commits to.
"""

import hashlib
from typing import Sequence

from primitives.field import QM31
from primitives.script import OP_CAT, OP_SHA256, Script, encode_num
from primitives.u31 import qm31_stack_items

HASH_SIZE = 32


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def hash_stack_items(values: Sequence[int]) -> bytes:
    """Commitment to integer stack items listed in push order."""
    if not values:
        raise ValueError("cannot commit to an empty item list")
    h = sha256(encode_num(values[-1]))
    for v in reversed(values[:-1]):
        h = sha256(encode_num(v) + h)
    return h


def pack_qm31(v: QM31) -> bytes:
    """Commitment to a QM31 value as laid out by qm31_push."""
    return hash_stack_items(qm31_stack_items(v))


class CommitmentGadget:
    """Script counterparts of hash_stack_items and pack_qm31."""

    @staticmethod
    def hash_stack_items(k: int) -> Script:
        """Replace the top k items with their commitment."""
        if k < 1:
            raise ValueError(f"need at least one item to commit to, got {k}")
        return Script(OP_SHA256, [OP_CAT, OP_SHA256] * (k - 1))

    @staticmethod
    def commit_qm31() -> Script:
        return CommitmentGadget.hash_stack_items(4)
