"""
Registry of compliance statements.

Defines the proof types, the compiled circuit each one is proven against and
the fixed order of its public signals.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Dict, Tuple


class ProofType(Enum):
    """Compliance statements a holder can prove."""

    WHITELIST = "whitelist"
    BLACKLIST = "blacklist"
    JURISDICTION = "jurisdiction"
    ACCREDITATION = "accreditation"
    AGGREGATION = "aggregation"


@dataclass(frozen=True)
class CircuitSpec:
    """
    Specification for a compliance circuit.

    Attributes:
        proof_type: Statement proven by the circuit
        circuit_name: Artifact name under the build directory
        public_signals: Public signal names in on-chain order
        private_inputs: Private witness inputs (for documentation)
        description: Human-readable statement description
    """

    proof_type: ProofType
    circuit_name: str
    public_signals: Tuple[str, ...]
    private_inputs: Tuple[str, ...]
    description: str

    @property
    def public_signal_count(self) -> int:
        return len(self.public_signals)


CIRCUIT_REGISTRY: Dict[ProofType, CircuitSpec] = {
    ProofType.WHITELIST: CircuitSpec(
        proof_type=ProofType.WHITELIST,
        circuit_name="whitelist_membership",
        public_signals=("nullifierHash",),
        private_inputs=("identity", "pathElements", "pathIndices"),
        description="Prove identity is a leaf of the whitelist tree",
    ),
    ProofType.BLACKLIST: CircuitSpec(
        proof_type=ProofType.BLACKLIST,
        circuit_name="blacklist_membership",
        public_signals=("blacklistRoot", "nullifierHash", "challengeHash"),
        private_inputs=("identity", "pathElements", "pathIndices", "siblingHash"),
        description="Prove identity is not a leaf of the blacklist tree",
    ),
    ProofType.JURISDICTION: CircuitSpec(
        proof_type=ProofType.JURISDICTION,
        circuit_name="jurisdiction_proof",
        public_signals=("allowedJurisdictionsMask",),
        private_inputs=("userJurisdiction", "userSalt"),
        description="Prove committed jurisdiction is in the allowed set",
    ),
    ProofType.ACCREDITATION: CircuitSpec(
        proof_type=ProofType.ACCREDITATION,
        circuit_name="accreditation_proof",
        public_signals=("minimumAccreditation",),
        private_inputs=("userAccreditation", "userSalt", "issuerSignature"),
        description="Prove committed accreditation meets the minimum level",
    ),
    ProofType.AGGREGATION: CircuitSpec(
        proof_type=ProofType.AGGREGATION,
        circuit_name="compliance_aggregation_fixed",
        public_signals=(
            "minimumComplianceLevel",
            "commitmentHash",
            "weightKyc",
            "weightAml",
            "weightJurisdiction",
            "weightAccreditation",
        ),
        private_inputs=(
            "kycScore",
            "amlScore",
            "jurisdictionScore",
            "accreditationScore",
            "userSalt",
        ),
        description="Prove weighted compliance score meets the threshold",
    ),
}


def parse_proof_type(value) -> ProofType:
    """Accept a ProofType or its string value."""
    if isinstance(value, ProofType):
        return value
    try:
        return ProofType(value)
    except ValueError:
        raise ValueError(f"Unknown proof type: {value!r}") from None


def get_circuit_spec(proof_type) -> CircuitSpec:
    """Get the circuit specification for a proof type."""
    return CIRCUIT_REGISTRY[parse_proof_type(proof_type)]
