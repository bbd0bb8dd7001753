"""Circle group over M31 and the evaluation domains FRI works on.

Points satisfy x^2 + y^2 = 1. The group law is
    (x1, y1) + (x2, y2) = (x1*x2 - y1*y2, x1*y2 + y1*x2)
with identity (1, 0); the full group has order 2^31.

A circle domain of size N = 2^logn is the coset of odd multiples of the
generator G of order 2N, in natural order:
    P_k = G^(1 + 4k)            for k < N/2
    P_{k + N/2} = conj(P_k)     (x, -y)
so that positions k and k + N/2 share an x-coordinate.
"""

from dataclasses import dataclass
from typing import List

from primitives.field import batch_inverse_ints, m31

# --- Circle Points ---


@dataclass(frozen=True)
class CirclePoint:
    x: int
    y: int

    def __add__(self, other: "CirclePoint") -> "CirclePoint":
        return CirclePoint(
            m31(self.x * other.x - self.y * other.y),
            m31(self.x * other.y + self.y * other.x),
        )

    def double(self) -> "CirclePoint":
        return CirclePoint(m31(2 * self.x * self.x - 1), m31(2 * self.x * self.y))

    def conjugate(self) -> "CirclePoint":
        return CirclePoint(self.x, m31(-self.y))

    def mul(self, scalar: int) -> "CirclePoint":
        """Scalar multiplication by double-and-add."""
        result = CIRCLE_IDENTITY
        base = self
        while scalar > 0:
            if scalar & 1:
                result = result + base
            base = base.double()
            scalar >>= 1
        return result


CIRCLE_IDENTITY = CirclePoint(1, 0)

M31_CIRCLE_LOG_ORDER = 31
M31_CIRCLE_GEN = CirclePoint(2, 1268011823)
"""Generator of the full circle group (order 2^31)."""


def subgroup_gen(log_size: int) -> CirclePoint:
    """Generator of the subgroup of order 2^log_size."""
    if not 0 <= log_size <= M31_CIRCLE_LOG_ORDER:
        raise ValueError(f"log_size must be in [0, {M31_CIRCLE_LOG_ORDER}], got {log_size}")
    g = M31_CIRCLE_GEN
    for _ in range(M31_CIRCLE_LOG_ORDER - log_size):
        g = g.double()
    return g


# --- Domains ---


def circle_domain(logn: int) -> List[CirclePoint]:
    """Points of the size 2^logn canonic coset in natural order."""
    if logn < 1:
        raise ValueError(f"circle domain needs logn >= 1, got {logn}")
    half = 1 << (logn - 1)
    g = subgroup_gen(logn + 1)
    step = g.mul(4)

    first_half = []
    p = g
    for _ in range(half):
        first_half.append(p)
        p = p + step
    return first_half + [q.conjugate() for q in first_half]


def line_domain_xs(logn: int) -> List[int]:
    """x-coordinates of the first folded layer (size 2^(logn-1))."""
    half = 1 << (logn - 1)
    return [p.x for p in circle_domain(logn)[:half]]


def fold_line_xs(xs: List[int]) -> List[int]:
    """x-coordinates of the next line layer: 2x^2 - 1 over the first half."""
    half = len(xs) // 2
    return [m31(2 * x * x - 1) for x in xs[:half]]


# --- Twiddles ---


def circle_twiddles(logn: int) -> List[int]:
    """Inverse y-coordinates of the circle domain, used by the circle fold."""
    return batch_inverse_ints([p.y for p in circle_domain(logn)])


def line_twiddles(xs: List[int]) -> List[int]:
    """Inverse x-coordinates of the first half of a line layer."""
    return batch_inverse_ints(xs[: len(xs) // 2])

