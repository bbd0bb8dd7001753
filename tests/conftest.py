"""Shared fixtures for the FRI script verifier tests."""

import hashlib
import random
import sys
from pathlib import Path

import pytest

# tests/ is inside the repository root
root_dir = Path(__file__).parent.parent
if str(root_dir) not in sys.path:
    sys.path.insert(0, str(root_dir))

from primitives.field import M31_PRIME, QM31  # noqa: E402


def random_qm31(rng: random.Random) -> QM31:
    return QM31(*(rng.randrange(M31_PRIME) for _ in range(4)))


def random_digest(rng: random.Random) -> bytes:
    return bytes(rng.randrange(256) for _ in range(32))


@pytest.fixture
def seed() -> bytes:
    return hashlib.sha256(b"fri-test-seed").digest()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(0)
