"""Groth16 artifacts, proving, formatting and verification."""

from .assets import ArtifactResolver, CircuitArtifacts
from .formatter import FormattedProof, ProofFormatter
from .prover import GeneratedProof, ProofGenerator
from .verification_key import VerificationKey
from .verifier import MockVerifier, ProofVerifier, RealVerifier, VerificationGateway

__all__ = [
    "ArtifactResolver",
    "CircuitArtifacts",
    "FormattedProof",
    "ProofFormatter",
    "GeneratedProof",
    "ProofGenerator",
    "VerificationKey",
    "MockVerifier",
    "ProofVerifier",
    "RealVerifier",
    "VerificationGateway",
]
