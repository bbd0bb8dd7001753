"""Script counterpart of Channel.

The channel state is kept on top of the stack. Values to absorb sit directly
below it; drawn values are left below the new state.
"""

from primitives.commitment import CommitmentGadget, HASH_SIZE
from primitives.extraction import ExtractorGadget
from primitives.script import (
    OP_CAT,
    OP_DUP,
    OP_FROMALTSTACK,
    OP_SHA256,
    OP_SWAP,
    OP_TOALTSTACK,
    Script,
)
from primitives.u31 import trim_m31
from protocol.channel import DRAW_DOMAIN_BYTE, N_QUERIES


class ChannelGadget:

    @staticmethod
    def new(seed: bytes) -> Script:
        if len(seed) != HASH_SIZE:
            raise ValueError(f"channel seed must be {HASH_SIZE} bytes, got {len(seed)}")
        return Script(seed)

    @staticmethod
    def absorb_commitment() -> Script:
        """[commitment, state] -> [state']"""
        return Script(OP_SWAP, OP_CAT, OP_SHA256)

    @staticmethod
    def absorb_qm31() -> Script:
        """[v, state] -> [state']"""
        return Script(
            OP_TOALTSTACK,
            CommitmentGadget.commit_qm31(),
            OP_FROMALTSTACK,
            OP_SWAP,
            OP_CAT,
            OP_SHA256,
        )

    @staticmethod
    def _next_digest() -> Script:
        """[state] -> [state', digest]"""
        return Script(OP_DUP, OP_SHA256, OP_SWAP, DRAW_DOMAIN_BYTE, OP_CAT, OP_SHA256)

    @staticmethod
    def draw_element_using_hint() -> Script:
        """[state] -> [state', v] using an extraction hint."""
        return Script(ChannelGadget._next_digest(), ExtractorGadget.unpack_qm31())

    @staticmethod
    def draw_5queries_using_hint(logn: int) -> Script:
        """[state] -> [state', q4, q3, q2, q1, q0] with every q in [0, 2^logn)."""
        script = Script(ChannelGadget._next_digest(), ExtractorGadget.unpack_5m31())
        for _ in range(N_QUERIES - 1):
            script.push([trim_m31(logn), OP_TOALTSTACK])
        script.push(trim_m31(logn))
        script.push([OP_FROMALTSTACK] * (N_QUERIES - 1))
        return script
