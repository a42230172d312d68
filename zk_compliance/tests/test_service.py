"""
Tests for the holder-side proving pipeline.

snarkjs is replaced by a fake runner that proves with a synthetic trapdoor,
so every stage except the circuit itself runs for real.
"""

import pytest

from zk_compliance.assembler import ComplianceScores
from zk_compliance.claims import Claim, ClaimSet, ClaimTopic
from zk_compliance.exceptions import (
    AccreditationBelowMinimum,
    ClaimNotFound,
    IdentityBlacklisted,
    IdentityNotInSet,
    InsufficientComplianceScore,
    JurisdictionNotAllowed,
)
from zk_compliance.nullifiers import NullifierDeriver
from zk_compliance.rules import ComplianceRules
from zk_compliance.service import ComplianceProver
from zk_compliance.snark.assets import ArtifactResolver
from zk_compliance.snark.formatter import ProofFormatter
from zk_compliance.snark.prover import ProofGenerator
from zk_compliance.snark.verifier import MockVerifier, VerificationGateway
from zk_compliance.statements import ProofType

WHITELIST = [11111, 12345, 33333, 44444]
BLACKLIST = [666, 777]


@pytest.fixture
def rules():
    return ComplianceRules(
        allowed_jurisdictions=frozenset({1, 3, 5}),
        minimum_accreditation=3,
        tree_depth=8,
    )


@pytest.fixture
def prover(rules, engine, artifact_dir, fake_snarkjs):
    generator = ProofGenerator(ArtifactResolver(artifact_dir), runner=fake_snarkjs)
    return ComplianceProver(rules, engine=engine, generator=generator)


@pytest.fixture
def gateway():
    return VerificationGateway(MockVerifier())


def test_whitelist_proof(prover, engine, gateway):
    result = prover.prove_whitelist(12345, WHITELIST)
    root = prover.snapshot(WHITELIST).root

    assert result.proof_type is ProofType.WHITELIST
    assert result.public_outputs["merkleRoot"] == root
    assert result.nullifier == NullifierDeriver(engine).whitelist(12345, root)
    assert result.proof.public_signals == (result.nullifier,)
    assert gateway.verify(result.proof_type, result.proof)


def test_whitelist_precheck_runs_before_prover(prover, fake_snarkjs):
    with pytest.raises(IdentityNotInSet):
        prover.prove_whitelist(99999, WHITELIST)
    assert fake_snarkjs.calls == []


def test_blacklist_proof_with_fresh_challenge(prover, gateway):
    first = prover.prove_blacklist(12345, BLACKLIST)
    second = prover.prove_blacklist(12345, BLACKLIST)

    root = prover.snapshot(BLACKLIST).root
    assert first.proof.public_signals[0] == root
    assert first.public_outputs["challengeHash"] != second.public_outputs["challengeHash"]
    assert first.nullifier != second.nullifier
    assert gateway.verify_batch("blacklist", [first.proof, second.proof]) == [True, True]


def test_blacklist_fixed_challenge_is_deterministic(prover):
    first = prover.prove_blacklist(12345, BLACKLIST, challenge=42)
    second = prover.prove_blacklist(12345, BLACKLIST, challenge=42)
    assert first.proof.public_signals == second.proof.public_signals


def test_blacklisted_identity_rejected(prover, fake_snarkjs):
    with pytest.raises(IdentityBlacklisted):
        prover.prove_blacklist(666, BLACKLIST, challenge=1)
    assert fake_snarkjs.calls == []


def test_jurisdiction_proof(prover, engine, gateway):
    result = prover.prove_jurisdiction(3, salt=99)
    mask = (1 << 1) | (1 << 3) | (1 << 5)
    assert result.proof.public_signals == (mask,)
    assert result.public_outputs["commitmentHash"] == engine.commitment(3, salt=99)
    assert gateway.verify_jurisdiction(*result.proof.as_args())


def test_jurisdiction_not_allowed(prover):
    with pytest.raises(JurisdictionNotAllowed):
        prover.prove_jurisdiction(2)


def test_accreditation_proof(prover, gateway):
    result = prover.prove_accreditation(4, (1, 2), (3, 4), salt=5)
    assert result.proof.public_signals == (3,)
    assert gateway.verify_accreditation(*result.proof.as_args())


def test_accreditation_below_minimum(prover):
    with pytest.raises(AccreditationBelowMinimum, match="minimum"):
        prover.prove_accreditation(2, (1, 2), (3, 4))


def test_compliance_aggregation(prover, engine, gateway):
    scores = ComplianceScores(kyc=90, aml=85, jurisdiction=95, accreditation=80)
    result = prover.prove_compliance(scores, salt=11)

    commitment = engine.commitment(90, 85, 95, 80, salt=11)
    assert result.proof.public_signals == (50, commitment, 25, 25, 25, 25)
    assert gateway.verify_compliance_aggregation(*result.proof.as_args())


def test_compliance_below_threshold(prover, fake_snarkjs):
    scores = ComplianceScores(kyc=40, aml=40, jurisdiction=40, accreditation=40)
    with pytest.raises(InsufficientComplianceScore) as excinfo:
        prover.prove_compliance(scores)
    assert excinfo.value.weighted_sum == 4000
    assert excinfo.value.required == 5000
    assert fake_snarkjs.calls == []


def test_compliance_from_claims(prover):
    claims = ClaimSet(
        [
            Claim(ClaimTopic.KYC, 90),
            Claim(ClaimTopic.AML, 85),
            Claim(ClaimTopic.RESIDENCE, 95),
            Claim(ClaimTopic.ACCREDITATION, 80),
        ]
    )
    result = prover.prove_compliance_from_claims(claims, salt=1)
    assert result.proof_type is ProofType.AGGREGATION

    del claims.claims[-1]
    with pytest.raises(ClaimNotFound):
        prover.prove_compliance_from_claims(claims)


def test_result_bundle_round_trip(prover):
    result = prover.prove_jurisdiction(5, salt=3)
    proof_type, proof = ProofFormatter.import_bundle(result.to_bundle())
    assert proof_type is ProofType.JURISDICTION
    assert proof == result.proof
    assert result.nullifier is None


def test_snapshots_are_reused(prover):
    first = prover.snapshot(WHITELIST)
    assert prover.snapshot(list(WHITELIST)) is first
    assert len(prover.snapshots) == 1
