"""
Witness assembly for the five compliance circuits.

Each assembler runs its domain pre-check first, so that an ineligible holder
gets a specific reason (IdentityNotInSet, JurisdictionNotAllowed, ...) instead
of an opaque constraint failure from the prover. Public commitments and
nullifiers are computed here with the HashEngine before the prover is invoked.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from .config import (
    BLACKLIST_ANCHOR_INDEX,
    COMPLIANCE_SCALE,
    MAX_JURISDICTION_CODE,
    MAX_SUB_SCORE,
)
from .exceptions import (
    AccreditationBelowMinimum,
    IdentityBlacklisted,
    IdentityNotInSet,
    InsufficientComplianceScore,
    JurisdictionNotAllowed,
)
from .hashing import HashEngine, check_field_element
from .merkle import MerkleSnapshot
from .nullifiers import NullifierDeriver
from .security import new_salt
from .statements import CircuitSpec, ProofType, get_circuit_spec

logger = logging.getLogger(__name__)


# ============================================================================
# SCORES AND WEIGHTS
# ============================================================================


def _check_non_negative(value, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{label} must be int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{label} must be non-negative")
    return value


@dataclass(frozen=True)
class ComplianceScores:
    """Sub-scores in [0, 100]. Private to the holder."""

    kyc: int
    aml: int
    jurisdiction: int
    accreditation: int

    def __post_init__(self) -> None:
        for name in ("kyc", "aml", "jurisdiction", "accreditation"):
            value = _check_non_negative(getattr(self, name), f"{name} score")
            if value > MAX_SUB_SCORE:
                raise ValueError(f"{name} score must be at most {MAX_SUB_SCORE}")

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.kyc, self.aml, self.jurisdiction, self.accreditation)


@dataclass(frozen=True)
class ComplianceWeights:
    """Integer weights for the four sub-scores. Public."""

    kyc: int
    aml: int
    jurisdiction: int
    accreditation: int

    def __post_init__(self) -> None:
        for name in ("kyc", "aml", "jurisdiction", "accreditation"):
            _check_non_negative(getattr(self, name), f"{name} weight")

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.kyc, self.aml, self.jurisdiction, self.accreditation)


def weighted_sum(scores: ComplianceScores, weights: ComplianceWeights) -> int:
    return sum(s * w for s, w in zip(scores.as_tuple(), weights.as_tuple()))


def scaled_threshold(minimum_level: int) -> int:
    """Caller-facing minimum level on the circuit's fixed-point scale."""
    return _check_non_negative(minimum_level, "minimum_level") * COMPLIANCE_SCALE


def jurisdiction_mask(allowed: Iterable[int]) -> int:
    """OR of 1 << code for every allowed jurisdiction code."""
    mask = 0
    for code in allowed:
        check_jurisdiction_code(code)
        mask |= 1 << code
    return mask


def check_jurisdiction_code(code) -> int:
    _check_non_negative(code, "jurisdiction code")
    if code > MAX_JURISDICTION_CODE:
        raise ValueError(
            f"jurisdiction code must be at most {MAX_JURISDICTION_CODE}"
        )
    return code


# ============================================================================
# WITNESS
# ============================================================================


@dataclass(frozen=True)
class CircuitWitness:
    """
    Everything the prover needs for one circuit run.

    Attributes:
        proof_type: Statement being proven
        circuit_input: Input map in the circuit's signal names (decimal strings)
        public_signals: Expected public signals in on-chain order
        public_outputs: Named public values (root, nullifier, commitment, ...)
        precheck_reason: Domain statement the circuit enforces, reported if
            the prover rejects the witness
    """

    proof_type: ProofType
    circuit_input: Mapping[str, Any]
    public_signals: Tuple[int, ...]
    public_outputs: Mapping[str, int] = field(default_factory=dict)
    precheck_reason: Optional[str] = None

    @property
    def spec(self) -> CircuitSpec:
        return get_circuit_spec(self.proof_type)

    @property
    def circuit_name(self) -> str:
        return self.spec.circuit_name

    def to_json(self) -> str:
        return json.dumps(dict(self.circuit_input), sort_keys=True)


def _dec(value: int) -> str:
    return str(value)


# ============================================================================
# ASSEMBLER
# ============================================================================


class ProofInputAssembler:
    """
    Build per-circuit witnesses.

    Args:
        engine: HashEngine used for leaves, commitments and nullifiers
        nullifiers: Optional NullifierDeriver sharing the same engine
    """

    def __init__(
        self, engine: HashEngine, nullifiers: Optional[NullifierDeriver] = None
    ) -> None:
        self.engine = engine
        self.nullifiers = nullifiers or NullifierDeriver(engine)

    def whitelist(self, identity: int, snapshot: MerkleSnapshot) -> CircuitWitness:
        """
        Raises:
            IdentityNotInSet: If H(identity) is not a leaf of the snapshot
        """
        check_field_element(identity, "identity")
        leaf = self.engine.hash_leaf(identity)
        if not snapshot.contains_leaf(leaf):
            raise IdentityNotInSet("identity not found in whitelist")

        path = snapshot.proof_for_leaf(leaf)
        nullifier = self.nullifiers.whitelist(identity, snapshot.root)

        circuit_input = {
            "identity": _dec(identity),
            "pathElements": [_dec(e) for e in path.path_elements],
            "pathIndices": list(path.path_indices),
            "merkleRoot": _dec(snapshot.root),
            "nullifierHash": _dec(nullifier),
        }
        logger.debug("Assembled whitelist witness (snapshot v%d)", snapshot.version)
        return CircuitWitness(
            proof_type=ProofType.WHITELIST,
            circuit_input=circuit_input,
            public_signals=(nullifier,),
            public_outputs={"merkleRoot": snapshot.root, "nullifierHash": nullifier},
            precheck_reason="whitelist membership constraint failed",
        )

    def blacklist(
        self, identity: int, snapshot: MerkleSnapshot, challenge: int
    ) -> CircuitWitness:
        """
        Raises:
            IdentityBlacklisted: If H(identity) is a leaf of the snapshot
        """
        check_field_element(identity, "identity")
        check_field_element(challenge, "challenge")
        leaf = self.engine.hash_leaf(identity)
        if snapshot.contains_leaf(leaf):
            raise IdentityBlacklisted("identity is present in blacklist")

        path = snapshot.proof(BLACKLIST_ANCHOR_INDEX)
        nullifier = self.nullifiers.blacklist(identity, snapshot.root, challenge)

        circuit_input = {
            "identity": _dec(identity),
            "pathElements": [_dec(e) for e in path.path_elements],
            "pathIndices": list(path.path_indices),
            "siblingHash": _dec(path.path_elements[0]),
            "blacklistRoot": _dec(snapshot.root),
            "nullifierHash": _dec(nullifier),
            "challengeHash": _dec(challenge),
        }
        logger.debug("Assembled blacklist witness (snapshot v%d)", snapshot.version)
        return CircuitWitness(
            proof_type=ProofType.BLACKLIST,
            circuit_input=circuit_input,
            public_signals=(snapshot.root, nullifier, challenge),
            public_outputs={
                "blacklistRoot": snapshot.root,
                "nullifierHash": nullifier,
                "challengeHash": challenge,
            },
            precheck_reason="blacklist non-membership constraint failed",
        )

    def jurisdiction(
        self,
        jurisdiction_code: int,
        allowed_jurisdictions: Iterable[int],
        salt: Optional[int] = None,
    ) -> CircuitWitness:
        """
        Raises:
            JurisdictionNotAllowed: If the code is not in the allowed set
        """
        check_jurisdiction_code(jurisdiction_code)
        allowed = frozenset(allowed_jurisdictions)
        mask = jurisdiction_mask(allowed)
        if jurisdiction_code not in allowed:
            raise JurisdictionNotAllowed("jurisdiction not in allowed list")

        salt = new_salt() if salt is None else check_field_element(salt, "salt")
        commitment = self.engine.commitment(jurisdiction_code, salt=salt)

        circuit_input = {
            "userJurisdiction": _dec(jurisdiction_code),
            "userSalt": _dec(salt),
            "allowedJurisdictionsMask": _dec(mask),
            "commitmentHash": _dec(commitment),
        }
        return CircuitWitness(
            proof_type=ProofType.JURISDICTION,
            circuit_input=circuit_input,
            public_signals=(mask,),
            public_outputs={
                "allowedJurisdictionsMask": mask,
                "commitmentHash": commitment,
            },
            precheck_reason="jurisdiction constraint failed",
        )

    def accreditation(
        self,
        level: int,
        minimum_level: int,
        issuer_signature: Tuple[int, int],
        issuer_public_key: Tuple[int, int],
        salt: Optional[int] = None,
    ) -> CircuitWitness:
        """
        Raises:
            AccreditationBelowMinimum: If level < minimum_level
        """
        _check_non_negative(level, "accreditation level")
        _check_non_negative(minimum_level, "minimum level")
        signature = _pair(issuer_signature, "issuer_signature")
        public_key = _pair(issuer_public_key, "issuer_public_key")
        if level < minimum_level:
            raise AccreditationBelowMinimum(
                f"Accreditation level below minimum ({minimum_level})"
            )

        salt = new_salt() if salt is None else check_field_element(salt, "salt")
        commitment = self.engine.commitment(level, salt=salt)

        circuit_input = {
            "userAccreditation": _dec(level),
            "userSalt": _dec(salt),
            "issuerSignature": [_dec(v) for v in signature],
            "minimumAccreditation": _dec(minimum_level),
            "commitmentHash": _dec(commitment),
            "issuerPublicKey": [_dec(v) for v in public_key],
        }
        return CircuitWitness(
            proof_type=ProofType.ACCREDITATION,
            circuit_input=circuit_input,
            public_signals=(minimum_level,),
            public_outputs={
                "minimumAccreditation": minimum_level,
                "commitmentHash": commitment,
            },
            precheck_reason="accreditation constraint failed",
        )

    def aggregation(
        self,
        scores: ComplianceScores,
        weights: ComplianceWeights,
        minimum_level: int,
        salt: Optional[int] = None,
    ) -> CircuitWitness:
        """
        Raises:
            InsufficientComplianceScore: If the weighted sum is below
                minimum_level * COMPLIANCE_SCALE
        """
        total = weighted_sum(scores, weights)
        required = scaled_threshold(minimum_level)
        if total < required:
            raise InsufficientComplianceScore(total, required)

        salt = new_salt() if salt is None else check_field_element(salt, "salt")
        commitment = self.engine.commitment(*scores.as_tuple(), salt=salt)

        circuit_input = {
            "kycScore": _dec(scores.kyc),
            "amlScore": _dec(scores.aml),
            "jurisdictionScore": _dec(scores.jurisdiction),
            "accreditationScore": _dec(scores.accreditation),
            "userSalt": _dec(salt),
            "minimumComplianceLevel": _dec(minimum_level),
            "commitmentHash": _dec(commitment),
            "weightKyc": _dec(weights.kyc),
            "weightAml": _dec(weights.aml),
            "weightJurisdiction": _dec(weights.jurisdiction),
            "weightAccreditation": _dec(weights.accreditation),
        }
        logger.debug("Assembled aggregation witness (threshold %d)", required)
        return CircuitWitness(
            proof_type=ProofType.AGGREGATION,
            circuit_input=circuit_input,
            public_signals=(minimum_level, commitment) + weights.as_tuple(),
            public_outputs={
                "minimumComplianceLevel": minimum_level,
                "commitmentHash": commitment,
            },
            precheck_reason="compliance aggregation constraint failed",
        )


def _pair(values, label: str) -> Tuple[int, int]:
    values = tuple(values)
    if len(values) != 2:
        raise ValueError(f"{label} must have exactly two elements")
    return (
        check_field_element(values[0], f"{label}[0]"),
        check_field_element(values[1], f"{label}[1]"),
    )
