"""
Privacy-preserving compliance proofs.

Public API for building identity trees, deriving nullifiers, assembling
circuit witnesses, generating Groth16 proofs and verifying them in mock or
real mode.
"""

__version__ = "0.1.0"

from .assembler import (
    CircuitWitness,
    ComplianceScores,
    ComplianceWeights,
    ProofInputAssembler,
)
from .claims import Claim, ClaimSet, ClaimTopic
from .factory import build_gateway, gateway_for_rules, get_verifier
from .feature_flags import (
    get_hash_backend,
    get_verifier_mode,
    set_hash_backend,
    set_verifier_mode,
)
from .hashing import HashEngine
from .merkle import InclusionProof, MerkleSnapshot, MerkleTreeBuilder, SnapshotRegistry
from .nullifiers import NullifierDeriver, NullifierLedger
from .rules import ComplianceRules, load_rules
from .service import ComplianceProofResult, ComplianceProver
from .snark import (
    ArtifactResolver,
    FormattedProof,
    MockVerifier,
    ProofFormatter,
    ProofGenerator,
    RealVerifier,
    VerificationGateway,
)
from .statements import ProofType

__all__ = [
    "__version__",
    "CircuitWitness",
    "ComplianceScores",
    "ComplianceWeights",
    "ProofInputAssembler",
    "Claim",
    "ClaimSet",
    "ClaimTopic",
    "build_gateway",
    "gateway_for_rules",
    "get_verifier",
    "get_hash_backend",
    "get_verifier_mode",
    "set_hash_backend",
    "set_verifier_mode",
    "HashEngine",
    "InclusionProof",
    "MerkleSnapshot",
    "MerkleTreeBuilder",
    "SnapshotRegistry",
    "NullifierDeriver",
    "NullifierLedger",
    "ComplianceRules",
    "load_rules",
    "ComplianceProofResult",
    "ComplianceProver",
    "ArtifactResolver",
    "FormattedProof",
    "MockVerifier",
    "ProofFormatter",
    "ProofGenerator",
    "RealVerifier",
    "VerificationGateway",
    "ProofType",
]
