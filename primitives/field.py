"""Mersenne-31 field GF(p) and its degree-4 extension QM31.

The base field uses the galois library (FF). The extension tower is
    CM31 = M31[i] / (i^2 + 1)
    QM31 = CM31[u] / (u^2 - (2 + i))
and is implemented directly on integer coordinates. A QM31 element with
coordinates (a, b, c, d) is (a + b*i) + (c + d*i)*u.
"""

from dataclasses import dataclass
from typing import List, Tuple, Union

import galois

# --- Field Construction ---

M31_PRIME = 2**31 - 1

FF = galois.GF(M31_PRIME)
"""Base field GF(p) - Mersenne-31 prime field."""


def m31(x: int) -> int:
    """Reduce an integer to its canonical representative in [0, p)."""
    return x % M31_PRIME


# --- Complex Extension ---

@dataclass(frozen=True)
class CM31:
    """a + b*i with i^2 = -1."""
    a: int
    b: int

    def __post_init__(self):
        object.__setattr__(self, "a", self.a % M31_PRIME)
        object.__setattr__(self, "b", self.b % M31_PRIME)

    def __add__(self, other: "CM31") -> "CM31":
        return CM31(self.a + other.a, self.b + other.b)

    def __mul__(self, other: Union["CM31", int]) -> "CM31":
        if isinstance(other, int):
            return CM31(self.a * other, self.b * other)
        return CM31(
            self.a * other.a - self.b * other.b,
            self.a * other.b + self.b * other.a,
        )

    __rmul__ = __mul__


# u^2 = 2 + i
R = CM31(2, 1)


# --- Secure Extension ---

@dataclass(frozen=True)
class QM31:
    """(a + b*i) + (c + d*i)*u, the field challenges are drawn from."""
    a: int
    b: int
    c: int
    d: int

    def __post_init__(self):
        for name in ("a", "b", "c", "d"):
            object.__setattr__(self, name, getattr(self, name) % M31_PRIME)

    @classmethod
    def from_m31(cls, x: int) -> "QM31":
        return cls(x, 0, 0, 0)

    @classmethod
    def from_cm31(cls, x: CM31, y: CM31) -> "QM31":
        return cls(x.a, x.b, y.a, y.b)

    @classmethod
    def zero(cls) -> "QM31":
        return cls(0, 0, 0, 0)

    @classmethod
    def one(cls) -> "QM31":
        return cls(1, 0, 0, 0)

    def coords(self) -> Tuple[int, int, int, int]:
        return (self.a, self.b, self.c, self.d)

    def _halves(self) -> Tuple[CM31, CM31]:
        return CM31(self.a, self.b), CM31(self.c, self.d)

    def __add__(self, other: "QM31") -> "QM31":
        return QM31(self.a + other.a, self.b + other.b, self.c + other.c, self.d + other.d)

    def __sub__(self, other: "QM31") -> "QM31":
        return QM31(self.a - other.a, self.b - other.b, self.c - other.c, self.d - other.d)

    def __mul__(self, other: Union["QM31", int]) -> "QM31":
        if isinstance(other, int):
            return QM31(self.a * other, self.b * other, self.c * other, self.d * other)
        x1, y1 = self._halves()
        x2, y2 = other._halves()
        return QM31.from_cm31(x1 * x2 + y1 * y2 * R, x1 * y2 + y1 * x2)

    __rmul__ = __mul__

    def __repr__(self) -> str:
        return f"QM31({self.a}, {self.b}, {self.c}, {self.d})"


# --- Montgomery Batch Inversion ---

def batch_inverse(values):
    """Montgomery batch inversion for a galois FF array.

    N inversions become 3N-3 multiplications and a single inversion.

    Raises:
        ZeroDivisionError: If any element is zero
    """
    n = len(values)
    if n == 0:
        return values
    if n == 1:
        return values ** -1

    field_type = type(values)

    cumprods = field_type.Zeros(n)
    cumprods[0] = values[0]
    for i in range(1, n):
        cumprods[i] = cumprods[i - 1] * values[i]

    inv_total = cumprods[n - 1] ** -1

    results = field_type.Zeros(n)
    z = inv_total
    for i in range(n - 1, 0, -1):
        results[i] = z * cumprods[i - 1]
        z = z * values[i]
    results[0] = z

    return results


def batch_inverse_ints(values: List[int]) -> List[int]:
    """batch_inverse over plain ints, returning canonical ints."""
    if not values:
        return []
    return [int(v) for v in batch_inverse(FF([v % M31_PRIME for v in values]))]
