"""Script gadgets for M31 words and QM31 values on the VM stack.

A QM31 value (a, b, c, d) occupies four stack items pushed as d, c, b, a so
that `a` sits on top.

The VM has no branching, so selections are done with a data-dependent
OP_ROLL: with items [x0, x1] below a 0/1 flag f, `f OP_ROLL OP_NIP` keeps x0
when f = 0 and x1 when f = 1.
"""

from typing import List

from primitives.field import M31_PRIME, QM31
from primitives.script import (
    OP_2DROP,
    OP_ABS,
    OP_DROP,
    OP_DUP,
    OP_EQUALVERIFY,
    OP_FROMALTSTACK,
    OP_GREATERTHANOREQUAL,
    OP_LESSTHAN,
    OP_NIP,
    OP_PICK,
    OP_ROLL,
    OP_SUB,
    OP_SWAP,
    OP_TOALTSTACK,
    OP_TUCK,
    OP_VERIFY,
    OP_WITHIN,
    Script,
)

# Largest bit width a single script number can be decomposed into.
MAX_LIMB_BITS = 30


# --- Witness Pushes ---


def qm31_push(v: QM31) -> Script:
    """Push a QM31 value so its first coordinate ends on top."""
    return Script(v.d, v.c, v.b, v.a)


def qm31_stack_items(v: QM31) -> List[int]:
    """Stack items produced by qm31_push, in push order."""
    return [v.d, v.c, v.b, v.a]


# --- QM31 Stack Moves ---


def qm31_equalverify() -> Script:
    """[v, w] -> [] failing unless v == w."""
    return Script(
        4, OP_ROLL, OP_EQUALVERIFY,
        3, OP_ROLL, OP_EQUALVERIFY,
        2, OP_ROLL, OP_EQUALVERIFY,
        OP_EQUALVERIFY,
    )


def qm31_toaltstack() -> Script:
    return Script([OP_TOALTSTACK] * 4)


def qm31_fromaltstack() -> Script:
    return Script([OP_FROMALTSTACK] * 4)


def qm31_copy() -> Script:
    """Duplicate the QM31 on top of the stack."""
    return Script([3, OP_PICK] * 4)


# --- Word Reduction ---


def sub_if(value: int) -> Script:
    """[x, f] -> [x - f*value] for a 0/1 flag f."""
    return Script(value, 0, 2, OP_ROLL, OP_ROLL, OP_NIP, OP_SUB)


def reduce_p_to_zero() -> Script:
    """Map x = p to 0 and keep every x < p unchanged."""
    return Script(OP_DUP, M31_PRIME, OP_LESSTHAN, 0, OP_SWAP, OP_ROLL, OP_NIP)


def word_to_m31() -> Script:
    """Interpret a 4-byte little-endian word as an M31 element.

    The script number of a 4-byte word has magnitude w & 0x7fffffff, so
    OP_ABS yields the low 31 bits and the result is w & 0x7fffffff with
    p folded to 0.
    """
    return Script(OP_ABS, reduce_p_to_zero())


def trim_m31(logn: int) -> Script:
    """Keep the low `logn` bits of a 31-bit value."""
    if not 1 <= logn <= 31:
        raise ValueError(f"trim width must be in [1, 31], got {logn}")
    script = Script()
    for i in range(30, logn - 1, -1):
        script.push([OP_DUP, 1 << i, OP_GREATERTHANOREQUAL, sub_if(1 << i)])
    return script


# --- Bit Decomposition ---


def limb_to_be_bits(n: int, range_check: bool = True) -> Script:
    """[x] -> [b_{n-1}, ..., b_1, b_0] with the least significant bit on top.

    With range_check the script fails unless 0 <= x < 2^n.
    """
    if not 1 <= n <= MAX_LIMB_BITS:
        raise ValueError(f"bit width must be in [1, {MAX_LIMB_BITS}], got {n}")
    script = Script()
    if range_check:
        script.push([OP_DUP, 0, 1 << n, OP_WITHIN, OP_VERIFY])
    for i in range(n - 1, 0, -1):
        script.push([OP_DUP, 1 << i, OP_GREATERTHANOREQUAL, OP_TUCK, sub_if(1 << i)])
    return script


def copy_bits_to_altstack(n: int) -> Script:
    """Copy the top n bit items to the alt stack so b_0 is popped first."""
    script = Script()
    for j in range(n):
        script.push([n - 1 - j, OP_PICK, OP_TOALTSTACK])
    return script


def drop_items(n: int) -> Script:
    """Drop n items from the top of the stack."""
    return Script([OP_2DROP] * (n // 2), [OP_DROP] * (n % 2))
