"""Primitives - Field arithmetic, the script VM, and hash commitments."""

from primitives.circle import (
    M31_CIRCLE_GEN,
    CirclePoint,
    circle_domain,
    subgroup_gen,
)
from primitives.commitment import (
    HASH_SIZE,
    CommitmentGadget,
    hash_stack_items,
    pack_qm31,
)
from primitives.extraction import (
    ExtractionHint,
    ExtractorGadget,
    extract_5m31,
    extract_qm31,
)
from primitives.field import (
    CM31,
    FF,
    M31_PRIME,
    QM31,
    batch_inverse,
)
from primitives.merkle_tree import (
    MerkleProof,
    MerkleRoot,
    MerkleTree,
    MerkleTreeGadget,
)
from primitives.script import (
    ExecuteInfo,
    Opcode,
    Script,
    execute_script,
    pull_hint,
)
from primitives.twiddle_merkle_tree import (
    TwiddleMerkleProof,
    TwiddleMerkleTree,
    TwiddleMerkleTreeGadget,
    twiddle_merkle_tree_root,
)

__all__ = [
    # Field
    "FF",
    "M31_PRIME",
    "CM31",
    "QM31",
    "batch_inverse",
    # Circle
    "CirclePoint",
    "M31_CIRCLE_GEN",
    "circle_domain",
    "subgroup_gen",
    # Script VM
    "Opcode",
    "Script",
    "ExecuteInfo",
    "execute_script",
    "pull_hint",
    # Commitments
    "HASH_SIZE",
    "CommitmentGadget",
    "hash_stack_items",
    "pack_qm31",
    # Extraction
    "ExtractionHint",
    "ExtractorGadget",
    "extract_qm31",
    "extract_5m31",
    # Merkle Trees
    "MerkleProof",
    "MerkleRoot",
    "MerkleTree",
    "MerkleTreeGadget",
    "TwiddleMerkleProof",
    "TwiddleMerkleTree",
    "TwiddleMerkleTreeGadget",
    "twiddle_merkle_tree_root",
]
