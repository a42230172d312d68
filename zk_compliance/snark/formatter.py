"""
Convert snarkjs Groth16 proofs into the on-chain calling convention.

    a: [F, F]
    b: [[F, F], [F, F]]
    c: [F, F]
    publicSignals: [F, ...]

snarkjs writes each G2 coordinate as (c0, c1); the pairing precompile expects
(c1, c0). `format` swaps the two components of each inner pair of `b`, and
`pairing_b` undoes the swap for off-chain verification.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import cbor2
from eth_abi import encode
from eth_utils import keccak

from ..config import (
    PROOF_BUNDLE_VERSION,
    PROOF_SIZE_BYTES,
    SNARK_BASE_FIELD,
    SNARK_SCALAR_FIELD,
)
from ..exceptions import MalformedProofError
from ..security import constant_time_compare
from ..statements import ProofType, get_circuit_spec, parse_proof_type

Pair = Tuple[int, int]


@dataclass(frozen=True)
class FormattedProof:
    """Proof in on-chain order. `b` inner pairs are already swapped."""

    a: Pair
    b: Tuple[Pair, Pair]
    c: Pair
    public_signals: Tuple[int, ...]

    def as_args(self) -> Tuple[List[int], List[List[int]], List[int], List[int]]:
        return (
            list(self.a),
            [list(self.b[0]), list(self.b[1])],
            list(self.c),
            list(self.public_signals),
        )

    def to_calldata(self) -> Dict[str, Any]:
        """Decimal-string form accepted by contract call encoders."""
        return {
            "a": [str(v) for v in self.a],
            "b": [[str(v) for v in row] for row in self.b],
            "c": [str(v) for v in self.c],
            "publicSignals": [str(v) for v in self.public_signals],
        }


def _to_int(value: Any, label: str) -> int:
    if isinstance(value, bool):
        raise MalformedProofError(f"{label} must be a field element")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16) if value.startswith(("0x", "0X")) else int(value)
        except ValueError:
            raise MalformedProofError(f"{label} is not an integer: {value!r}") from None
    raise MalformedProofError(f"{label} must be int or str, got {type(value).__name__}")


def _coord(value: Any, label: str) -> int:
    n = _to_int(value, label)
    if not 0 <= n < SNARK_BASE_FIELD:
        raise MalformedProofError(f"{label} is outside the base field")
    return n


def _signal(value: Any, label: str) -> int:
    n = _to_int(value, label)
    if not 0 <= n < SNARK_SCALAR_FIELD:
        raise MalformedProofError(f"{label} is outside the scalar field")
    return n


def _seq(value: Any, length: int, label: str) -> Sequence[Any]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise MalformedProofError(f"{label} must be a sequence")
    if len(value) != length:
        raise MalformedProofError(f"{label} must have {length} elements, got {len(value)}")
    return value


class ProofFormatter:
    """Format, validate and serialize Groth16 proofs."""

    @staticmethod
    def validate_raw_proof(raw_proof: Mapping[str, Any]) -> bool:
        """True if pi_a, pi_b and pi_c each have three projective components."""
        if not isinstance(raw_proof, Mapping):
            return False
        for key in ("pi_a", "pi_b", "pi_c"):
            value = raw_proof.get(key)
            if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
                return False
            if len(value) != 3:
                return False
        return True

    @classmethod
    def format(
        cls,
        raw_proof: Mapping[str, Any],
        public_signals: Sequence[Any],
        proof_type=None,
    ) -> FormattedProof:
        """
        Convert a snarkjs proof to the on-chain encoding.

        Raises:
            MalformedProofError: If the raw proof or the signals are malformed
        """
        if not cls.validate_raw_proof(raw_proof):
            raise MalformedProofError("raw proof must contain pi_a, pi_b, pi_c of length 3")

        pi_a, pi_b, pi_c = raw_proof["pi_a"], raw_proof["pi_b"], raw_proof["pi_c"]
        b0 = _seq(pi_b[0], 2, "pi_b[0]")
        b1 = _seq(pi_b[1], 2, "pi_b[1]")

        return cls.check_structure(
            a=(pi_a[0], pi_a[1]),
            b=((b0[1], b0[0]), (b1[1], b1[0])),
            c=(pi_c[0], pi_c[1]),
            public_signals=public_signals,
            proof_type=proof_type,
        )

    @staticmethod
    def check_structure(
        a: Sequence[Any],
        b: Sequence[Sequence[Any]],
        c: Sequence[Any],
        public_signals: Sequence[Any],
        proof_type=None,
    ) -> FormattedProof:
        """
        Check shapes and field ranges without any cryptography.

        When `proof_type` is given, the signal count must also match the
        circuit convention.

        Raises:
            MalformedProofError: On any shape, type or range violation
        """
        a = _seq(a, 2, "a")
        b = _seq(b, 2, "b")
        b_rows = [_seq(b[0], 2, "b[0]"), _seq(b[1], 2, "b[1]")]
        c = _seq(c, 2, "c")
        if isinstance(public_signals, (str, bytes)) or not isinstance(
            public_signals, Sequence
        ):
            raise MalformedProofError("publicSignals must be a sequence")

        if proof_type is not None:
            expected = get_circuit_spec(proof_type).public_signal_count
            if len(public_signals) != expected:
                raise MalformedProofError(
                    f"Invalid public signals count. Expected {expected}, "
                    f"got {len(public_signals)}"
                )

        return FormattedProof(
            a=(_coord(a[0], "a[0]"), _coord(a[1], "a[1]")),
            b=tuple(
                (_coord(row[0], f"b[{i}][0]"), _coord(row[1], f"b[{i}][1]"))
                for i, row in enumerate(b_rows)
            ),
            c=(_coord(c[0], "c[0]"), _coord(c[1], "c[1]")),
            public_signals=tuple(
                _signal(s, f"publicSignals[{i}]") for i, s in enumerate(public_signals)
            ),
        )

    @classmethod
    def is_well_formed(cls, a, b, c, public_signals, proof_type=None) -> bool:
        try:
            cls.check_structure(a, b, c, public_signals, proof_type)
        except MalformedProofError:
            return False
        return True

    @staticmethod
    def pairing_b(proof: FormattedProof) -> Tuple[Pair, Pair]:
        """`b` back in snarkjs (c0, c1) coordinate order."""
        return ((proof.b[0][1], proof.b[0][0]), (proof.b[1][1], proof.b[1][0]))

    @staticmethod
    def proof_hash(proof: FormattedProof) -> bytes:
        """keccak256(abi.encode(a, b, c, publicSignals))."""
        a, b, c, signals = proof.as_args()
        encoded = encode(
            ["uint256[2]", "uint256[2][2]", "uint256[2]", "uint256[]"],
            [a, b, c, signals],
        )
        return keccak(encoded)

    @staticmethod
    def estimate_size(proof: Optional[FormattedProof] = None) -> int:
        """Proof points only: eight 32-byte field elements."""
        return PROOF_SIZE_BYTES

    @classmethod
    def export_bundle(cls, proof: FormattedProof, proof_type) -> bytes:
        """Versioned CBOR bundle carrying the proof and its hash."""
        proof_type = parse_proof_type(proof_type)
        data = {
            "v": PROOF_BUNDLE_VERSION,
            "proof_type": proof_type.value,
            "circuit": get_circuit_spec(proof_type).circuit_name,
            **proof.to_calldata(),
            "proof_hash": cls.proof_hash(proof),
        }
        return cbor2.dumps(data)

    @classmethod
    def import_bundle(cls, data: bytes) -> Tuple[ProofType, FormattedProof]:
        """
        Raises:
            MalformedProofError: On decode failure, unsupported version,
                shape errors or a proof hash mismatch
        """
        try:
            decoded = cbor2.loads(data)
        except Exception as exc:
            raise MalformedProofError("proof bundle is not valid CBOR") from exc

        if not isinstance(decoded, dict):
            raise MalformedProofError("proof bundle must be a map")
        if decoded.get("v") != PROOF_BUNDLE_VERSION:
            raise MalformedProofError("Unsupported proof format version")

        try:
            proof_type = parse_proof_type(decoded["proof_type"])
            proof = cls.check_structure(
                decoded["a"],
                decoded["b"],
                decoded["c"],
                decoded["publicSignals"],
                proof_type,
            )
            recorded = decoded["proof_hash"]
        except (KeyError, ValueError) as exc:
            if isinstance(exc, MalformedProofError):
                raise
            raise MalformedProofError(f"invalid proof bundle: {exc}") from exc

        if not isinstance(recorded, bytes) or not constant_time_compare(
            recorded, cls.proof_hash(proof)
        ):
            raise MalformedProofError("proof hash mismatch")
        return proof_type, proof
