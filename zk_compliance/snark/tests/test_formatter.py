"""Tests for on-chain proof formatting, structural checks and bundles."""

from __future__ import annotations

import cbor2
import pytest
from eth_abi import encode
from eth_utils import keccak

from zk_compliance.config import SNARK_BASE_FIELD, SNARK_SCALAR_FIELD
from zk_compliance.exceptions import MalformedProofError
from zk_compliance.snark.formatter import FormattedProof, ProofFormatter
from zk_compliance.statements import ProofType

RAW_PROOF = {
    "pi_a": ["1", "2", "1"],
    "pi_b": [["3", "4"], ["5", "6"], ["1", "0"]],
    "pi_c": ["7", "8", "1"],
    "protocol": "groth16",
    "curve": "bn128",
}


def test_format_swaps_b_inner_pairs() -> None:
    proof = ProofFormatter.format(RAW_PROOF, ["9"])
    assert proof.a == (1, 2)
    assert proof.b == ((4, 3), (6, 5))
    assert proof.c == (7, 8)
    assert proof.public_signals == (9,)


def test_pairing_b_restores_snarkjs_order() -> None:
    proof = ProofFormatter.format(RAW_PROOF, ["9"])
    assert ProofFormatter.pairing_b(proof) == ((3, 4), (5, 6))


def test_to_calldata_uses_decimal_strings() -> None:
    calldata = ProofFormatter.format(RAW_PROOF, [9]).to_calldata()
    assert calldata == {
        "a": ["1", "2"],
        "b": [["4", "3"], ["6", "5"]],
        "c": ["7", "8"],
        "publicSignals": ["9"],
    }


def test_format_accepts_hex_and_int_values() -> None:
    proof = ProofFormatter.format(RAW_PROOF, ["0x0a", 11])
    assert proof.public_signals == (10, 11)


def test_format_checks_signal_count_for_proof_type() -> None:
    with pytest.raises(MalformedProofError, match="Expected 3, got 1"):
        ProofFormatter.format(RAW_PROOF, ["9"], ProofType.BLACKLIST)
    assert ProofFormatter.format(RAW_PROOF, ["9"], "whitelist").public_signals == (9,)


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {**RAW_PROOF, "pi_a": ["1", "2"]},
        {**RAW_PROOF, "pi_b": "abc"},
        {**RAW_PROOF, "pi_b": [["3"], ["5", "6"], ["1", "0"]]},
        [1, 2, 3],
    ],
)
def test_format_rejects_malformed_raw_proofs(raw) -> None:
    with pytest.raises(MalformedProofError):
        ProofFormatter.format(raw, ["9"])


def test_validate_raw_proof() -> None:
    assert ProofFormatter.validate_raw_proof(RAW_PROOF) is True
    assert ProofFormatter.validate_raw_proof({"pi_a": [1, 2, 3]}) is False


@pytest.mark.parametrize(
    "a, b, c, signals",
    [
        ([1], [[1, 2], [3, 4]], [1, 2], [1]),
        ([1, 2], [[1, 2]], [1, 2], [1]),
        ([1, 2], [[1, 2], [3, 4]], [1, 2, 3], [1]),
        ([SNARK_BASE_FIELD, 2], [[1, 2], [3, 4]], [1, 2], [1]),
        ([1, 2], [[1, -2], [3, 4]], [1, 2], [1]),
        ([1, 2], [[1, 2], [3, 4]], [1, 2], [SNARK_SCALAR_FIELD]),
        ([1, 2], [[1, 2], [3, 4]], [1, 2], ["x"]),
        ([1, 2], [[1, 2], [3, 4]], [1, 2], [1.5]),
        ([True, 2], [[1, 2], [3, 4]], [1, 2], [1]),
        ([1, 2], [[1, 2], [3, 4]], [1, 2], "1"),
    ],
)
def test_check_structure_rejects(a, b, c, signals) -> None:
    with pytest.raises(MalformedProofError):
        ProofFormatter.check_structure(a, b, c, signals)
    assert ProofFormatter.is_well_formed(a, b, c, signals) is False


def test_coordinates_range_over_base_field() -> None:
    value = SNARK_SCALAR_FIELD + 1
    assert ProofFormatter.is_well_formed([value, 1], [[1, 2], [3, 4]], [1, 2], [1])


def test_proof_hash_matches_abi_encoding() -> None:
    proof = ProofFormatter.format(RAW_PROOF, ["9", "10"])
    expected = keccak(
        encode(
            ["uint256[2]", "uint256[2][2]", "uint256[2]", "uint256[]"],
            [[1, 2], [[4, 3], [6, 5]], [7, 8], [9, 10]],
        )
    )
    assert ProofFormatter.proof_hash(proof) == expected
    assert len(expected) == 32


def test_estimate_size() -> None:
    assert ProofFormatter.estimate_size() == 256


def test_bundle_round_trip() -> None:
    proof = ProofFormatter.format(RAW_PROOF, ["9"])
    data = ProofFormatter.export_bundle(proof, "jurisdiction")
    proof_type, restored = ProofFormatter.import_bundle(data)
    assert proof_type is ProofType.JURISDICTION
    assert restored == proof
    decoded = cbor2.loads(data)
    assert decoded["v"] == 1
    assert decoded["circuit"] == "jurisdiction_proof"


def _bundle(**changes) -> bytes:
    proof = ProofFormatter.format(RAW_PROOF, ["9"])
    decoded = cbor2.loads(ProofFormatter.export_bundle(proof, ProofType.JURISDICTION))
    decoded.update(changes)
    return cbor2.dumps(decoded)


@pytest.mark.parametrize(
    "data, match",
    [
        (b"\xa1", "CBOR"),
        (cbor2.dumps([1, 2]), "map"),
        (_bundle(v=2), "version"),
        (_bundle(proof_type="kyc"), "invalid proof bundle"),
        (_bundle(publicSignals=["10"]), "hash mismatch"),
        (_bundle(publicSignals=["9", "10"]), "signals count"),
        (_bundle(proof_hash="00"), "hash mismatch"),
    ],
)
def test_import_bundle_rejects(data, match) -> None:
    with pytest.raises(MalformedProofError, match=match):
        ProofFormatter.import_bundle(data)


def test_import_bundle_missing_field() -> None:
    decoded = cbor2.loads(_bundle())
    del decoded["c"]
    with pytest.raises(MalformedProofError, match="invalid proof bundle"):
        ProofFormatter.import_bundle(cbor2.dumps(decoded))


def test_formatted_proof_is_frozen() -> None:
    proof = FormattedProof(a=(1, 2), b=((1, 2), (3, 4)), c=(1, 2), public_signals=(1,))
    with pytest.raises(AttributeError):
        proof.a = (0, 0)
