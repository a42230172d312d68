"""Groth16 verification keys in snarkjs JSON form."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from ..config import CURVE_NAME, PROOF_PROTOCOL, SNARK_BASE_FIELD
from ..exceptions import MalformedVerificationKey

G1Affine = Tuple[int, int]
G2Affine = Tuple[Tuple[int, int], Tuple[int, int]]


@dataclass(frozen=True)
class VerificationKey:
    """
    Affine BN254 points of a Groth16 verification key.

    G2 coordinates keep snarkjs order: ((x.c0, x.c1), (y.c0, y.c1)).
    """

    alpha1: G1Affine
    beta2: G2Affine
    gamma2: G2Affine
    delta2: G2Affine
    ic: Tuple[G1Affine, ...]

    @property
    def n_public(self) -> int:
        return len(self.ic) - 1

    @classmethod
    def from_json(
        cls, data: Mapping[str, Any], expected_public_inputs: Optional[int] = None
    ) -> "VerificationKey":
        """
        Raises:
            MalformedVerificationKey: On wrong protocol/curve, bad point
                encodings, or an IC length that does not match nPublic or
                `expected_public_inputs`
        """
        if not isinstance(data, Mapping):
            raise MalformedVerificationKey("verification key must be a JSON object")
        if data.get("protocol") != PROOF_PROTOCOL:
            raise MalformedVerificationKey(
                f"unsupported protocol: {data.get('protocol')!r}"
            )
        if data.get("curve") != CURVE_NAME:
            raise MalformedVerificationKey(f"unsupported curve: {data.get('curve')!r}")

        try:
            alpha1 = _g1(data["vk_alpha_1"])
            beta2 = _g2(data["vk_beta_2"])
            gamma2 = _g2(data["vk_gamma_2"])
            delta2 = _g2(data["vk_delta_2"])
            ic = tuple(_g1(p) for p in data["IC"])
        except KeyError as exc:
            raise MalformedVerificationKey(f"missing field {exc.args[0]!r}") from None

        if len(ic) < 1:
            raise MalformedVerificationKey("IC must contain at least one point")

        n_public = len(ic) - 1
        declared = data.get("nPublic")
        if declared is not None and str(declared) != str(n_public):
            raise MalformedVerificationKey(
                f"nPublic {declared} does not match IC length {len(ic)}"
            )
        if expected_public_inputs is not None and n_public != expected_public_inputs:
            raise MalformedVerificationKey(
                f"key declares {n_public} public inputs, circuit expects "
                f"{expected_public_inputs}"
            )

        return cls(alpha1=alpha1, beta2=beta2, gamma2=gamma2, delta2=delta2, ic=ic)

    def to_json(self) -> Dict[str, Any]:
        return {
            "protocol": PROOF_PROTOCOL,
            "curve": CURVE_NAME,
            "nPublic": self.n_public,
            "vk_alpha_1": _g1_json(self.alpha1),
            "vk_beta_2": _g2_json(self.beta2),
            "vk_gamma_2": _g2_json(self.gamma2),
            "vk_delta_2": _g2_json(self.delta2),
            "IC": [_g1_json(p) for p in self.ic],
        }


def _coord(value: Any) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise MalformedVerificationKey(f"invalid coordinate: {value!r}") from None
    if not 0 <= n < SNARK_BASE_FIELD:
        raise MalformedVerificationKey("coordinate outside base field")
    return n


def _is_seq(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _g1(point: Sequence[Any]) -> G1Affine:
    if not _is_seq(point) or len(point) not in (2, 3):
        raise MalformedVerificationKey("G1 point must have 2 or 3 coordinates")
    if len(point) == 3 and str(point[2]) != "1":
        raise MalformedVerificationKey("G1 point must be affine (z = 1)")
    return (_coord(point[0]), _coord(point[1]))


def _g2(point: Sequence[Any]) -> G2Affine:
    if not _is_seq(point) or len(point) not in (2, 3):
        raise MalformedVerificationKey("G2 point must have 2 or 3 coordinates")
    if len(point) == 3 and (
        not _is_seq(point[2]) or [str(v) for v in point[2]] != ["1", "0"]
    ):
        raise MalformedVerificationKey("G2 point must be affine (z = 1)")
    x, y = point[0], point[1]
    if not all(_is_seq(v) and len(v) == 2 for v in (x, y)):
        raise MalformedVerificationKey("G2 coordinates must be pairs")
    return ((_coord(x[0]), _coord(x[1])), (_coord(y[0]), _coord(y[1])))


def _g1_json(point: G1Affine) -> list:
    return [str(point[0]), str(point[1]), "1"]


def _g2_json(point: G2Affine) -> list:
    return [
        [str(point[0][0]), str(point[0][1])],
        [str(point[1][0]), str(point[1][1])],
        ["1", "0"],
    ]
