"""
Groth16 verification behind a single immutable gateway.

Two verifiers share one interface:

    MockVerifier  structural checks only (tests and local development)
    RealVerifier  BN254 pairing check against per-circuit verification keys

Malformed input raises MalformedProofError before either verifier runs. A
well-formed proof that fails verification is reported as False, never as an
exception.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Sequence

from py_ecc.optimized_bn128 import (
    FQ,
    FQ2,
    Z1,
    add,
    b as CURVE_B,
    b2 as TWIST_B,
    curve_order,
    is_inf,
    is_on_curve,
    multiply,
    pairing,
)

from ..config import MAX_VERIFY_BATCH_SIZE
from ..statements import ProofType, get_circuit_spec, parse_proof_type
from .formatter import FormattedProof, ProofFormatter
from .verification_key import G1Affine, G2Affine, VerificationKey

logger = logging.getLogger(__name__)


class ProofVerifier(ABC):
    """Verify a structurally valid proof for one proof type."""

    mode: str = ""

    @abstractmethod
    def verify(self, proof_type: ProofType, proof: FormattedProof) -> bool:
        """Return True if the proof is accepted. Never raises on rejection."""


class MockVerifier(ProofVerifier):
    """
    Accept any well-formed proof whose signal count matches the circuit.

    Degenerate proofs with a zero `a` or `c` point are rejected. No
    cryptography is performed; never use in production.
    """

    mode = "mock"

    def verify(self, proof_type: ProofType, proof: FormattedProof) -> bool:
        expected = get_circuit_spec(proof_type).public_signal_count
        if len(proof.public_signals) != expected:
            return False
        if proof.a == (0, 0) or proof.c == (0, 0):
            return False
        return True


class RealVerifier(ProofVerifier):
    """
    Groth16 verifier over BN254.

    Accepts iff

        e(A, B) = e(alpha, beta) * e(vk_x, gamma) * e(C, delta)
        vk_x    = IC[0] + sum(s_i * IC[i + 1])

    Args:
        verification_keys: One key per proof type
    """

    mode = "real"

    def __init__(self, verification_keys: Mapping[ProofType, VerificationKey]) -> None:
        self._keys = {parse_proof_type(k): v for k, v in verification_keys.items()}
        # Key points are trusted and converted once.
        self._prepared = {pt: _PreparedKey.from_key(vk) for pt, vk in self._keys.items()}

    @property
    def proof_types(self) -> List[ProofType]:
        return list(self._keys)

    def verify(self, proof_type: ProofType, proof: FormattedProof) -> bool:
        prepared = self._prepared.get(proof_type)
        if prepared is None:
            logger.warning("No verification key loaded for %s", proof_type.value)
            return False
        if len(proof.public_signals) != len(prepared.ic) - 1:
            return False

        try:
            a = _g1_point(proof.a)
            b_point = _g2_point(ProofFormatter.pairing_b(proof))
            c = _g1_point(proof.c)
            if a is None or b_point is None or c is None:
                return False

            vk_x = prepared.ic[0]
            for signal, ic_point in zip(proof.public_signals, prepared.ic[1:]):
                vk_x = add(vk_x, multiply(ic_point, signal))

            lhs = pairing(b_point, a)
            rhs = (
                pairing(prepared.beta2, prepared.alpha1)
                * pairing(prepared.gamma2, vk_x)
                * pairing(prepared.delta2, c)
            )
            return lhs == rhs
        except Exception:
            logger.debug("Pairing check raised for %s", proof_type.value, exc_info=True)
            return False


@dataclass(frozen=True)
class _PreparedKey:
    alpha1: tuple
    beta2: tuple
    gamma2: tuple
    delta2: tuple
    ic: tuple

    @classmethod
    def from_key(cls, vk: VerificationKey) -> "_PreparedKey":
        return cls(
            alpha1=_to_g1(vk.alpha1),
            beta2=_to_g2(vk.beta2),
            gamma2=_to_g2(vk.gamma2),
            delta2=_to_g2(vk.delta2),
            ic=tuple(_to_g1(p) for p in vk.ic),
        )


def _to_g1(point: G1Affine):
    if point == (0, 0):
        return Z1
    return (FQ(point[0]), FQ(point[1]), FQ.one())


def _to_g2(point: G2Affine):
    (x0, x1), (y0, y1) = point
    return (FQ2([x0, x1]), FQ2([y0, y1]), FQ2.one())


def _g1_point(point: G1Affine):
    """Proof G1 point, or None if it is not on the curve."""
    p = _to_g1(point)
    if is_inf(p) or not is_on_curve(p, CURVE_B):
        return None
    return p


def _g2_point(point: G2Affine):
    """Proof G2 point, or None if it is off the curve or outside the subgroup."""
    p = _to_g2(point)
    if not is_on_curve(p, TWIST_B):
        return None
    if not is_inf(multiply(p, curve_order)):
        return None
    return p


# ============================================================================
# GATEWAY
# ============================================================================


@dataclass(frozen=True)
class VerificationGateway:
    """
    Per-proof-type verification entry points over one verifier.

    The verifier (and so the mode) is fixed at construction.

    Example:
        >>> gateway = VerificationGateway(MockVerifier())
        >>> gateway.verify_jurisdiction(a, b, c, [mask])
        True
    """

    verifier: ProofVerifier

    @property
    def mode(self) -> str:
        return self.verifier.mode

    def verify_whitelist_membership(self, a, b, c, public_signals) -> bool:
        return self._verify(ProofType.WHITELIST, a, b, c, public_signals)

    def verify_blacklist_non_membership(self, a, b, c, public_signals) -> bool:
        return self._verify(ProofType.BLACKLIST, a, b, c, public_signals)

    def verify_jurisdiction(self, a, b, c, public_signals) -> bool:
        return self._verify(ProofType.JURISDICTION, a, b, c, public_signals)

    def verify_accreditation(self, a, b, c, public_signals) -> bool:
        return self._verify(ProofType.ACCREDITATION, a, b, c, public_signals)

    def verify_compliance_aggregation(self, a, b, c, public_signals) -> bool:
        return self._verify(ProofType.AGGREGATION, a, b, c, public_signals)

    def verify(self, proof_type, proof: FormattedProof) -> bool:
        """Verify an already formatted proof."""
        return self._verify(
            parse_proof_type(proof_type), proof.a, proof.b, proof.c, proof.public_signals
        )

    def verify_batch(self, proof_type, proofs: Iterable[FormattedProof]) -> List[bool]:
        """
        Verify several proofs of one type.

        Raises:
            ValueError: If more than MAX_VERIFY_BATCH_SIZE proofs are given
            MalformedProofError: If any proof is malformed
        """
        proofs = list(proofs)
        if len(proofs) > MAX_VERIFY_BATCH_SIZE:
            raise ValueError(
                f"Batch size {len(proofs)} exceeds maximum {MAX_VERIFY_BATCH_SIZE}"
            )
        proof_type = parse_proof_type(proof_type)
        return [self.verify(proof_type, proof) for proof in proofs]

    def _verify(self, proof_type: ProofType, a, b, c, public_signals: Sequence) -> bool:
        proof = ProofFormatter.check_structure(a, b, c, public_signals)
        accepted = self.verifier.verify(proof_type, proof)
        logger.debug(
            "%s verification (%s mode): %s",
            proof_type.value,
            self.verifier.mode,
            "accepted" if accepted else "rejected",
        )
        return accepted
