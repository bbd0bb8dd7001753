"""Protocol - Fiat-Shamir channel and the FRI prover and script verifier."""

from protocol.channel import N_QUERIES, Channel
from protocol.channel_gadget import ChannelGadget
from protocol.fri import FRI, fri_prove, fri_verify
from protocol.fri_gadget import FRIGadget
from protocol.proof import (
    FriProof,
    from_bytes,
    proof_from_json,
    proof_to_json,
    to_bytes,
    validate_proof_structure,
)

__all__ = [
    # Channel
    "Channel",
    "ChannelGadget",
    "N_QUERIES",
    # FRI
    "FRI",
    "FriProof",
    "FRIGadget",
    "fri_prove",
    "fri_verify",
    # Serialization
    "to_bytes",
    "from_bytes",
    "proof_to_json",
    "proof_from_json",
    "validate_proof_structure",
]
