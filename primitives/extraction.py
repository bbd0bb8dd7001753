"""Deriving field elements from a 32-byte digest, natively and in script.

The digest is read as eight little-endian u32 words w0..w7. Each word yields
the M31 element (w & 0x7fffffff) with p mapped to 0. A QM31 value takes
w0..w3; a batch of five query positions takes w0..w4.

The script cannot split a digest, so the prover supplies the words it uses
plus the remaining bytes as a hint. The gadget requires every word to be
exactly four bytes and converts it, then re-concatenates all pieces and
checks them against the digest. Fixed word sizes pin the tail as well.
"""

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from primitives.field import M31_PRIME, QM31
from primitives.script import (
    OP_CAT,
    OP_DUP,
    OP_EQUALVERIFY,
    OP_FROMALTSTACK,
    OP_SIZE,
    OP_TOALTSTACK,
    Script,
    pull_hint,
)
from primitives.u31 import word_to_m31

DIGEST_SIZE = 32
WORD_SIZE = 4


@dataclass
class ExtractionHint:
    """Digest words consumed by the extraction, plus the unused tail."""
    words: List[bytes]
    tail: bytes

    def push(self) -> Script:
        return Script(self.words, self.tail)


def _digest_words(digest: bytes) -> np.ndarray:
    if len(digest) != DIGEST_SIZE:
        raise ValueError(f"digest must be {DIGEST_SIZE} bytes, got {len(digest)}")
    return np.frombuffer(digest, dtype="<u4")


def word_to_m31_value(word: int) -> int:
    v = int(word) & 0x7fffffff
    return 0 if v == M31_PRIME else v


def extract_m31s(digest: bytes, n: int) -> Tuple[List[int], ExtractionHint]:
    """First n M31 elements of a digest and the hint proving them."""
    if not 1 <= n <= DIGEST_SIZE // WORD_SIZE:
        raise ValueError(f"can extract 1..{DIGEST_SIZE // WORD_SIZE} elements, got {n}")
    words = _digest_words(digest)
    values = [word_to_m31_value(w) for w in words[:n]]
    hint = ExtractionHint(
        words=[digest[i * WORD_SIZE:(i + 1) * WORD_SIZE] for i in range(n)],
        tail=digest[n * WORD_SIZE:],
    )
    return values, hint


def extract_qm31(digest: bytes) -> Tuple[QM31, ExtractionHint]:
    (a, b, c, d), hint = extract_m31s(digest, 4)
    return QM31(a, b, c, d), hint


def extract_5m31(digest: bytes) -> Tuple[List[int], ExtractionHint]:
    return extract_m31s(digest, 5)


class ExtractorGadget:
    """Script side of the extraction.

    Stack in: [..., digest]. Stack out: [..., c_{n-1}, ..., c_0] with c_0
    on top, which for n = 4 is exactly the qm31_push layout.
    """

    @staticmethod
    def unpack_m31s(n: int) -> Script:
        script = Script()
        for k in range(n):
            script.push([
                pull_hint(),
                OP_SIZE, WORD_SIZE, OP_EQUALVERIFY,
                OP_DUP, word_to_m31(), OP_TOALTSTACK,
            ])
            if k > 0:
                script.push(OP_CAT)
        script.push([pull_hint(), OP_CAT, OP_EQUALVERIFY])
        script.push([OP_FROMALTSTACK] * n)
        return script

    @staticmethod
    def unpack_qm31() -> Script:
        return ExtractorGadget.unpack_m31s(4)

    @staticmethod
    def unpack_5m31() -> Script:
        return ExtractorGadget.unpack_m31s(5)
