"""Script builder and interpreter for the constrained stack VM.

The VM follows Bitcoin Script with OP_CAT enabled and without flow control:
byte-string stack items, a main stack and an alt stack, 4-byte numeric
operands and SHA-256. Programs are built with `Script` and run with
`execute_script`, which reports pass/fail the way the target VM does.

Witness hints are pushed before the program body and sit at the bottom of the
stack. Gadgets pull them with `pull_hint()` in the order they were pushed.
"""

import hashlib
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional, Union

# --- VM Limits ---

MAX_SCRIPT_ELEMENT_SIZE = 520
MAX_STACK_SIZE = 1000
MAX_NUM_SIZE = 4


# --- Opcodes ---

class Opcode(IntEnum):
    """Opcode byte values (Bitcoin numbering)."""
    OP_0 = 0x00
    OP_FALSE = 0x00
    OP_PUSHDATA1 = 0x4c
    OP_PUSHDATA2 = 0x4d
    OP_1NEGATE = 0x4f
    OP_1 = 0x51
    OP_TRUE = 0x51
    OP_2 = 0x52
    OP_3 = 0x53
    OP_4 = 0x54
    OP_5 = 0x55
    OP_6 = 0x56
    OP_7 = 0x57
    OP_8 = 0x58
    OP_9 = 0x59
    OP_10 = 0x5a
    OP_11 = 0x5b
    OP_12 = 0x5c
    OP_13 = 0x5d
    OP_14 = 0x5e
    OP_15 = 0x5f
    OP_16 = 0x60
    OP_NOP = 0x61
    OP_VERIFY = 0x69
    OP_TOALTSTACK = 0x6b
    OP_FROMALTSTACK = 0x6c
    OP_2DROP = 0x6d
    OP_2DUP = 0x6e
    OP_DEPTH = 0x74
    OP_DROP = 0x75
    OP_DUP = 0x76
    OP_NIP = 0x77
    OP_OVER = 0x78
    OP_PICK = 0x79
    OP_ROLL = 0x7a
    OP_ROT = 0x7b
    OP_SWAP = 0x7c
    OP_TUCK = 0x7d
    OP_CAT = 0x7e
    OP_SIZE = 0x82
    OP_EQUAL = 0x87
    OP_EQUALVERIFY = 0x88
    OP_1ADD = 0x8b
    OP_1SUB = 0x8c
    OP_NEGATE = 0x8f
    OP_ABS = 0x90
    OP_NOT = 0x91
    OP_0NOTEQUAL = 0x92
    OP_ADD = 0x93
    OP_SUB = 0x94
    OP_BOOLAND = 0x9a
    OP_BOOLOR = 0x9b
    OP_NUMEQUAL = 0x9c
    OP_NUMEQUALVERIFY = 0x9d
    OP_NUMNOTEQUAL = 0x9e
    OP_LESSTHAN = 0x9f
    OP_GREATERTHAN = 0xa0
    OP_LESSTHANOREQUAL = 0xa1
    OP_GREATERTHANOREQUAL = 0xa2
    OP_MIN = 0xa3
    OP_MAX = 0xa4
    OP_WITHIN = 0xa5
    OP_SHA256 = 0xa8


# Module-level aliases so gadgets can write `OP_DUP` instead of `Opcode.OP_DUP`.
OP_0 = Opcode.OP_0
OP_FALSE = Opcode.OP_FALSE
OP_PUSHDATA1 = Opcode.OP_PUSHDATA1
OP_PUSHDATA2 = Opcode.OP_PUSHDATA2
OP_1NEGATE = Opcode.OP_1NEGATE
OP_1 = Opcode.OP_1
OP_TRUE = Opcode.OP_TRUE
OP_2 = Opcode.OP_2
OP_3 = Opcode.OP_3
OP_4 = Opcode.OP_4
OP_5 = Opcode.OP_5
OP_6 = Opcode.OP_6
OP_7 = Opcode.OP_7
OP_8 = Opcode.OP_8
OP_9 = Opcode.OP_9
OP_10 = Opcode.OP_10
OP_11 = Opcode.OP_11
OP_12 = Opcode.OP_12
OP_13 = Opcode.OP_13
OP_14 = Opcode.OP_14
OP_15 = Opcode.OP_15
OP_16 = Opcode.OP_16
OP_NOP = Opcode.OP_NOP
OP_VERIFY = Opcode.OP_VERIFY
OP_TOALTSTACK = Opcode.OP_TOALTSTACK
OP_FROMALTSTACK = Opcode.OP_FROMALTSTACK
OP_2DROP = Opcode.OP_2DROP
OP_2DUP = Opcode.OP_2DUP
OP_DEPTH = Opcode.OP_DEPTH
OP_DROP = Opcode.OP_DROP
OP_DUP = Opcode.OP_DUP
OP_NIP = Opcode.OP_NIP
OP_OVER = Opcode.OP_OVER
OP_PICK = Opcode.OP_PICK
OP_ROLL = Opcode.OP_ROLL
OP_ROT = Opcode.OP_ROT
OP_SWAP = Opcode.OP_SWAP
OP_TUCK = Opcode.OP_TUCK
OP_CAT = Opcode.OP_CAT
OP_SIZE = Opcode.OP_SIZE
OP_EQUAL = Opcode.OP_EQUAL
OP_EQUALVERIFY = Opcode.OP_EQUALVERIFY
OP_1ADD = Opcode.OP_1ADD
OP_1SUB = Opcode.OP_1SUB
OP_NEGATE = Opcode.OP_NEGATE
OP_ABS = Opcode.OP_ABS
OP_NOT = Opcode.OP_NOT
OP_0NOTEQUAL = Opcode.OP_0NOTEQUAL
OP_ADD = Opcode.OP_ADD
OP_SUB = Opcode.OP_SUB
OP_BOOLAND = Opcode.OP_BOOLAND
OP_BOOLOR = Opcode.OP_BOOLOR
OP_NUMEQUAL = Opcode.OP_NUMEQUAL
OP_NUMEQUALVERIFY = Opcode.OP_NUMEQUALVERIFY
OP_NUMNOTEQUAL = Opcode.OP_NUMNOTEQUAL
OP_LESSTHAN = Opcode.OP_LESSTHAN
OP_GREATERTHAN = Opcode.OP_GREATERTHAN
OP_LESSTHANOREQUAL = Opcode.OP_LESSTHANOREQUAL
OP_GREATERTHANOREQUAL = Opcode.OP_GREATERTHANOREQUAL
OP_MIN = Opcode.OP_MIN
OP_MAX = Opcode.OP_MAX
OP_WITHIN = Opcode.OP_WITHIN
OP_SHA256 = Opcode.OP_SHA256

_SMALL_INT_OPS = {n: Opcode(Opcode.OP_1 + n - 1) for n in range(1, 17)}


# --- Script Numbers ---

class ScriptError(Exception):
    """Raised inside the interpreter when an opcode fails."""


def encode_num(n: int) -> bytes:
    """Minimal little-endian sign-magnitude encoding of a script number."""
    if n == 0:
        return b""
    negative = n < 0
    magnitude = abs(n)
    out = bytearray()
    while magnitude:
        out.append(magnitude & 0xff)
        magnitude >>= 8
    if out[-1] & 0x80:
        out.append(0x80 if negative else 0x00)
    elif negative:
        out[-1] |= 0x80
    return bytes(out)


def decode_num(data: bytes, max_size: int = MAX_NUM_SIZE) -> int:
    """Decode a script number; non-minimal encodings are accepted."""
    if len(data) > max_size:
        raise ScriptError(f"numeric operand is {len(data)} bytes, limit is {max_size}")
    if not data:
        return 0
    value = int.from_bytes(data, "little")
    if data[-1] & 0x80:
        return -(value & ~(0x80 << (8 * (len(data) - 1))))
    return value


def cast_to_bool(data: bytes) -> bool:
    """Script truthiness: false for empty, all-zero and negative zero."""
    for i, byte in enumerate(data):
        if byte != 0:
            return not (i == len(data) - 1 and byte == 0x80)
    return False


# --- Script Builder ---

ScriptItem = Union[Opcode, bytes]


class Script:
    """An ordered opcode program.

    Accepts opcodes, ints (pushed as script numbers), bytes (pushed as data),
    nested scripts and any iterable of those.
    """

    def __init__(self, *parts: Any) -> None:
        self.items: List[ScriptItem] = []
        for part in parts:
            self.push(part)

    def push(self, part: Any) -> "Script":
        if isinstance(part, Script):
            self.items.extend(part.items)
        elif isinstance(part, Opcode):
            self.items.append(part)
        elif isinstance(part, bool):
            raise TypeError("push 1/0 or OP_TRUE/OP_FALSE instead of a bool")
        elif isinstance(part, int):
            self.items.append(_push_int(part))
        elif isinstance(part, (bytes, bytearray)):
            self.items.append(bytes(part))
        elif hasattr(part, "__iter__") and not isinstance(part, str):
            for sub in part:
                self.push(sub)
        else:
            raise TypeError(f"cannot push {type(part).__name__} into a script")
        return self

    def compile(self) -> bytes:
        """Serialize to script bytes."""
        out = bytearray()
        for item in self.items:
            if isinstance(item, Opcode):
                out.append(item)
            else:
                out.extend(_push_data_prefix(len(item)))
                out.extend(item)
        return bytes(out)

    def __len__(self) -> int:
        return len(self.compile())

    def __add__(self, other: "Script") -> "Script":
        return Script(self, other)

    def __repr__(self) -> str:
        return f"Script({len(self.items)} items, {len(self)} bytes)"


def _push_int(n: int) -> ScriptItem:
    if n == 0:
        return Opcode.OP_0
    if n == -1:
        return Opcode.OP_1NEGATE
    if 1 <= n <= 16:
        return _SMALL_INT_OPS[n]
    return encode_num(n)


def _push_data_prefix(length: int) -> bytes:
    if length == 0:
        return bytes([Opcode.OP_0])
    if length < Opcode.OP_PUSHDATA1:
        return bytes([length])
    if length <= 0xff:
        return bytes([Opcode.OP_PUSHDATA1, length])
    if length <= MAX_SCRIPT_ELEMENT_SIZE:
        return bytes([Opcode.OP_PUSHDATA2]) + length.to_bytes(2, "little")
    raise ValueError(f"push of {length} bytes exceeds element limit {MAX_SCRIPT_ELEMENT_SIZE}")


def pull_hint() -> Script:
    """Move the bottom-most stack item (the next unread hint) to the top."""
    return Script(Opcode.OP_DEPTH, Opcode.OP_1SUB, Opcode.OP_ROLL)


# --- Interpreter ---

@dataclass
class ExecuteInfo:
    """Outcome of running a script."""
    success: bool
    error: Optional[str] = None
    final_stack: List[bytes] = field(default_factory=list)
    alt_stack: List[bytes] = field(default_factory=list)
    n_opcodes: int = 0
    max_stack_items: int = 0


class StackMachine:
    """Executes script items against a main stack and an alt stack."""

    def __init__(self) -> None:
        self.stack: List[bytes] = []
        self.alt: List[bytes] = []
        self.n_opcodes = 0
        self.max_stack_items = 0
        self._ops: Dict[Opcode, Callable[[], None]] = {
            Opcode.OP_1NEGATE: lambda: self._push_num(-1),
            Opcode.OP_NOP: lambda: None,
            Opcode.OP_VERIFY: self._op_verify,
            Opcode.OP_TOALTSTACK: lambda: self.alt.append(self._pop()),
            Opcode.OP_FROMALTSTACK: self._op_fromaltstack,
            Opcode.OP_2DROP: self._op_2drop,
            Opcode.OP_2DUP: self._op_2dup,
            Opcode.OP_DEPTH: lambda: self._push_num(len(self.stack)),
            Opcode.OP_DROP: self._pop,
            Opcode.OP_DUP: lambda: self.stack.append(self._peek(0)),
            Opcode.OP_NIP: lambda: self._remove(1),
            Opcode.OP_OVER: lambda: self.stack.append(self._peek(1)),
            Opcode.OP_PICK: self._op_pick,
            Opcode.OP_ROLL: self._op_roll,
            Opcode.OP_ROT: lambda: self.stack.append(self._remove(2)),
            Opcode.OP_SWAP: lambda: self.stack.append(self._remove(1)),
            Opcode.OP_TUCK: self._op_tuck,
            Opcode.OP_CAT: self._op_cat,
            Opcode.OP_SIZE: lambda: self._push_num(len(self._peek(0))),
            Opcode.OP_EQUAL: lambda: self._push_bool(self._pop() == self._pop()),
            Opcode.OP_EQUALVERIFY: self._op_equalverify,
            Opcode.OP_1ADD: lambda: self._push_num(self._pop_num() + 1),
            Opcode.OP_1SUB: lambda: self._push_num(self._pop_num() - 1),
            Opcode.OP_NEGATE: lambda: self._push_num(-self._pop_num()),
            Opcode.OP_ABS: lambda: self._push_num(abs(self._pop_num())),
            Opcode.OP_NOT: lambda: self._push_bool(self._pop_num() == 0),
            Opcode.OP_0NOTEQUAL: lambda: self._push_bool(self._pop_num() != 0),
            Opcode.OP_ADD: lambda: self._binary(lambda a, b: a + b),
            Opcode.OP_SUB: lambda: self._binary(lambda a, b: a - b),
            Opcode.OP_BOOLAND: lambda: self._binary(lambda a, b: int(a != 0 and b != 0)),
            Opcode.OP_BOOLOR: lambda: self._binary(lambda a, b: int(a != 0 or b != 0)),
            Opcode.OP_NUMEQUAL: lambda: self._binary(lambda a, b: int(a == b)),
            Opcode.OP_NUMEQUALVERIFY: self._op_numequalverify,
            Opcode.OP_NUMNOTEQUAL: lambda: self._binary(lambda a, b: int(a != b)),
            Opcode.OP_LESSTHAN: lambda: self._binary(lambda a, b: int(a < b)),
            Opcode.OP_GREATERTHAN: lambda: self._binary(lambda a, b: int(a > b)),
            Opcode.OP_LESSTHANOREQUAL: lambda: self._binary(lambda a, b: int(a <= b)),
            Opcode.OP_GREATERTHANOREQUAL: lambda: self._binary(lambda a, b: int(a >= b)),
            Opcode.OP_MIN: lambda: self._binary(min),
            Opcode.OP_MAX: lambda: self._binary(max),
            Opcode.OP_WITHIN: self._op_within,
            Opcode.OP_SHA256: lambda: self.stack.append(hashlib.sha256(self._pop()).digest()),
        }

    def step(self, item: ScriptItem) -> None:
        if isinstance(item, Opcode):
            self.n_opcodes += 1
            if item == Opcode.OP_0:
                self.stack.append(b"")
            elif Opcode.OP_1 <= item <= Opcode.OP_16:
                self._push_num(item - Opcode.OP_1 + 1)
            elif item in self._ops:
                self._ops[item]()
            else:
                raise ScriptError(f"{item.name} is not supported")
        else:
            if len(item) > MAX_SCRIPT_ELEMENT_SIZE:
                raise ScriptError(f"push of {len(item)} bytes exceeds element limit")
            self.stack.append(item)

        depth = len(self.stack) + len(self.alt)
        if depth > MAX_STACK_SIZE:
            raise ScriptError(f"stack size {depth} exceeds limit {MAX_STACK_SIZE}")
        self.max_stack_items = max(self.max_stack_items, depth)

    # --- Stack Access ---

    def _pop(self) -> bytes:
        if not self.stack:
            raise ScriptError("pop from empty stack")
        return self.stack.pop()

    def _peek(self, depth: int) -> bytes:
        if depth < 0 or depth >= len(self.stack):
            raise ScriptError(f"stack depth {depth} out of range ({len(self.stack)} items)")
        return self.stack[-1 - depth]

    def _remove(self, depth: int) -> bytes:
        self._peek(depth)
        return self.stack.pop(-1 - depth)

    def _pop_num(self) -> int:
        return decode_num(self._pop())

    def _push_num(self, n: int) -> None:
        self.stack.append(encode_num(n))

    def _push_bool(self, flag: bool) -> None:
        self.stack.append(b"\x01" if flag else b"")

    def _binary(self, fn: Callable[[int, int], int]) -> None:
        b = self._pop_num()
        a = self._pop_num()
        self._push_num(fn(a, b))

    # --- Opcodes ---

    def _op_verify(self) -> None:
        if not cast_to_bool(self._pop()):
            raise ScriptError("OP_VERIFY failed")

    def _op_fromaltstack(self) -> None:
        if not self.alt:
            raise ScriptError("pop from empty alt stack")
        self.stack.append(self.alt.pop())

    def _op_2drop(self) -> None:
        self._pop()
        self._pop()

    def _op_2dup(self) -> None:
        a, b = self._peek(1), self._peek(0)
        self.stack.extend([a, b])

    def _op_pick(self) -> None:
        self.stack.append(self._peek(self._pop_num()))

    def _op_roll(self) -> None:
        self.stack.append(self._remove(self._pop_num()))

    def _op_tuck(self) -> None:
        self._peek(1)
        self.stack.insert(len(self.stack) - 2, self._peek(0))

    def _op_cat(self) -> None:
        b = self._pop()
        a = self._pop()
        if len(a) + len(b) > MAX_SCRIPT_ELEMENT_SIZE:
            raise ScriptError("OP_CAT result exceeds element limit")
        self.stack.append(a + b)

    def _op_equalverify(self) -> None:
        if self._pop() != self._pop():
            raise ScriptError("OP_EQUALVERIFY failed")

    def _op_numequalverify(self) -> None:
        if self._pop_num() != self._pop_num():
            raise ScriptError("OP_NUMEQUALVERIFY failed")

    def _op_within(self) -> None:
        upper = self._pop_num()
        lower = self._pop_num()
        x = self._pop_num()
        self._push_bool(lower <= x < upper)


def execute_script(script: Script) -> ExecuteInfo:
    """Run a complete program (witness pushes followed by the verifier body).

    Success requires every opcode to succeed, a single truthy item left on the
    main stack and an empty alt stack. Failures are reported, never raised.
    """
    vm = StackMachine()
    error = None
    for position, item in enumerate(script.items):
        try:
            vm.step(item)
        except ScriptError as e:
            name = item.name if isinstance(item, Opcode) else "push"
            error = f"{name} at item {position}: {e}"
            break

    if error is None:
        if len(vm.stack) != 1 or not cast_to_bool(vm.stack[0]):
            error = f"final stack must hold exactly one true item, found {len(vm.stack)} items"
        elif vm.alt:
            error = f"alt stack not empty at end of script ({len(vm.alt)} items)"

    return ExecuteInfo(
        success=error is None,
        error=error,
        final_stack=list(vm.stack),
        alt_stack=list(vm.alt),
        n_opcodes=vm.n_opcodes,
        max_stack_items=vm.max_stack_items,
    )
