"""
End-to-end proving pipeline for the five compliance statements.

    identities -> HashEngine -> MerkleTreeBuilder -> NullifierDeriver
               -> ProofInputAssembler -> ProofGenerator -> ProofFormatter

Verification stays on the VerificationGateway side and is not wired here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence, Tuple

from .assembler import CircuitWitness, ComplianceScores, ProofInputAssembler
from .claims import ClaimSet, scores_from_claims
from .hashing import HashEngine
from .merkle import MerkleSnapshot, MerkleTreeBuilder, SnapshotRegistry
from .nullifiers import NullifierDeriver
from .rules import ComplianceRules
from .snark.assets import ArtifactResolver
from .snark.formatter import FormattedProof, ProofFormatter
from .snark.prover import GeneratedProof, ProofGenerator
from .statements import ProofType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComplianceProofResult:
    """
    Attributes:
        proof_type: Statement proven
        proof: On-chain formatted proof
        public_outputs: Named public values (root, nullifier, commitment, ...)
        elapsed: Prover wall time in seconds
    """

    proof_type: ProofType
    proof: FormattedProof
    public_outputs: Mapping[str, int]
    elapsed: float

    @property
    def nullifier(self) -> Optional[int]:
        return self.public_outputs.get("nullifierHash")

    def to_bundle(self) -> bytes:
        return ProofFormatter.export_bundle(self.proof, self.proof_type)


class ComplianceProver:
    """
    Holder-side facade over the proving pipeline.

    Domain pre-checks run in the assembler, so an ineligible holder gets a
    PreCheckError before the prover is started.

    Args:
        rules: Public compliance parameters
        engine: Shared HashEngine (feature-flag backend when omitted)
        generator: ProofGenerator (artifacts from rules.build_dir when omitted)
    """

    def __init__(
        self,
        rules: Optional[ComplianceRules] = None,
        *,
        engine: Optional[HashEngine] = None,
        generator: Optional[ProofGenerator] = None,
    ) -> None:
        self.rules = rules or ComplianceRules()
        self.engine = engine or HashEngine()
        self.nullifiers = NullifierDeriver(self.engine)
        self.assembler = ProofInputAssembler(self.engine, self.nullifiers)
        self.snapshots = SnapshotRegistry(
            MerkleTreeBuilder(self.engine, depth=self.rules.tree_depth)
        )
        self.generator = generator or ProofGenerator(
            ArtifactResolver(self.rules.build_dir)
        )

    def snapshot(self, identities: Iterable[int]) -> MerkleSnapshot:
        return self.snapshots.get_or_build(identities)

    def prove_whitelist(
        self, identity: int, whitelist: Sequence[int]
    ) -> ComplianceProofResult:
        witness = self.assembler.whitelist(identity, self.snapshot(whitelist))
        return self._prove(witness)

    def prove_blacklist(
        self,
        identity: int,
        blacklist: Sequence[int],
        challenge: Optional[int] = None,
    ) -> ComplianceProofResult:
        """Prove non-membership; a fresh random challenge is drawn when omitted."""
        if challenge is None:
            challenge = self.nullifiers.fresh_challenge()
        witness = self.assembler.blacklist(identity, self.snapshot(blacklist), challenge)
        return self._prove(witness)

    def prove_jurisdiction(
        self, jurisdiction_code: int, salt: Optional[int] = None
    ) -> ComplianceProofResult:
        witness = self.assembler.jurisdiction(
            jurisdiction_code, self.rules.allowed_jurisdictions, salt=salt
        )
        return self._prove(witness)

    def prove_accreditation(
        self,
        level: int,
        issuer_signature: Tuple[int, int],
        issuer_public_key: Tuple[int, int],
        salt: Optional[int] = None,
    ) -> ComplianceProofResult:
        witness = self.assembler.accreditation(
            level,
            self.rules.minimum_accreditation,
            issuer_signature,
            issuer_public_key,
            salt=salt,
        )
        return self._prove(witness)

    def prove_compliance(
        self, scores: ComplianceScores, salt: Optional[int] = None
    ) -> ComplianceProofResult:
        witness = self.assembler.aggregation(
            scores,
            self.rules.weights,
            self.rules.minimum_compliance_level,
            salt=salt,
        )
        return self._prove(witness)

    def prove_compliance_from_claims(
        self, claims: ClaimSet, salt: Optional[int] = None
    ) -> ComplianceProofResult:
        """
        Raises:
            ClaimNotFound: If a required claim topic is absent
        """
        return self.prove_compliance(scores_from_claims(claims), salt=salt)

    def _prove(self, witness: CircuitWitness) -> ComplianceProofResult:
        generated: GeneratedProof = self.generator.generate(witness)
        formatted = ProofFormatter.format(
            generated.proof, generated.public_signals, witness.proof_type
        )
        logger.info(
            "%s proof ready (%d public signals)",
            witness.proof_type.value,
            len(formatted.public_signals),
        )
        return ComplianceProofResult(
            proof_type=witness.proof_type,
            proof=formatted,
            public_outputs=dict(witness.public_outputs),
            elapsed=generated.elapsed,
        )
