"""Shared pytest fixtures: keccak engine, synthetic Groth16 keys and a fake snarkjs."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Dict, Optional, Sequence

import pytest
from py_ecc.optimized_bn128 import G1, G2, curve_order, multiply, normalize

from zk_compliance import feature_flags
from zk_compliance.hashing import HashEngine
from zk_compliance.snark.assets import ArtifactResolver
from zk_compliance.snark.verification_key import VerificationKey
from zk_compliance.statements import CIRCUIT_REGISTRY, ProofType, get_circuit_spec


@pytest.fixture(autouse=True)
def reset_feature_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    feature_flags.set_hash_backend(None)
    feature_flags.set_verifier_mode(None)
    monkeypatch.delenv("ZK_COMPLIANCE_HASH_BACKEND", raising=False)
    monkeypatch.delenv("ZK_COMPLIANCE_VERIFIER_MODE", raising=False)
    monkeypatch.delenv("ZK_COMPLIANCE_BUILD_DIR", raising=False)
    yield
    feature_flags.set_hash_backend(None)
    feature_flags.set_verifier_mode(None)


@pytest.fixture
def engine() -> HashEngine:
    return HashEngine(backend="keccak")


# ============================================================================
# SYNTHETIC GROTH16
# ============================================================================


def _g1_affine(point) -> tuple:
    x, y = normalize(point)
    return (int(x), int(y))


def _g2_affine(point) -> tuple:
    x, y = normalize(point)
    return (
        (int(x.coeffs[0]), int(x.coeffs[1])),
        (int(y.coeffs[0]), int(y.coeffs[1])),
    )


class SyntheticGroth16:
    """
    Verification key with a known trapdoor, so that valid proofs can be
    produced for any public signal vector without a circuit.
    """

    def __init__(self, n_public: int, seed: int = 7) -> None:
        self.alpha = 1000 + seed
        self.beta = 2000 + seed
        self.gamma = 3000 + seed
        self.delta = 4000 + seed
        self.ic = [5000 + seed + i for i in range(n_public + 1)]
        self.vk = VerificationKey(
            alpha1=_g1_affine(multiply(G1, self.alpha)),
            beta2=_g2_affine(multiply(G2, self.beta)),
            gamma2=_g2_affine(multiply(G2, self.gamma)),
            delta2=_g2_affine(multiply(G2, self.delta)),
            ic=tuple(_g1_affine(multiply(G1, k)) for k in self.ic),
        )

    def prove(self, public_signals: Sequence[int], a: int = 11, b: int = 13) -> Dict:
        """Raw snarkjs proof JSON for `public_signals`."""
        x = self.ic[0]
        for s, k in zip(public_signals, self.ic[1:]):
            x = (x + s * k) % curve_order
        c = (a * b - self.alpha * self.beta - x * self.gamma) % curve_order
        c = c * pow(self.delta, -1, curve_order) % curve_order

        pa = _g1_affine(multiply(G1, a))
        pb = _g2_affine(multiply(G2, b))
        pc = _g1_affine(multiply(G1, c))
        return {
            "pi_a": [str(pa[0]), str(pa[1]), "1"],
            "pi_b": [
                [str(pb[0][0]), str(pb[0][1])],
                [str(pb[1][0]), str(pb[1][1])],
                ["1", "0"],
            ],
            "pi_c": [str(pc[0]), str(pc[1]), "1"],
            "protocol": "groth16",
            "curve": "bn128",
        }


@pytest.fixture(scope="session")
def groth16_keys() -> Dict[ProofType, SyntheticGroth16]:
    return {
        proof_type: SyntheticGroth16(spec.public_signal_count, seed=i)
        for i, (proof_type, spec) in enumerate(CIRCUIT_REGISTRY.items())
    }


@pytest.fixture
def artifact_dir(tmp_path: Path, groth16_keys) -> Path:
    """Build directory with placeholder .wasm/.zkey and real verification keys."""
    resolver = ArtifactResolver(tmp_path)
    for proof_type, key in groth16_keys.items():
        paths = resolver.paths(get_circuit_spec(proof_type).circuit_name)
        paths.wasm_path.parent.mkdir(parents=True, exist_ok=True)
        paths.wasm_path.write_bytes(b"\0asm")
        paths.zkey_path.write_bytes(b"zkey")
        paths.vkey_path.write_text(json.dumps(key.vk.to_json()), encoding="utf-8")
    return tmp_path


class FakeSnarkjs:
    """
    subprocess.run stand-in for `snarkjs wtns calculate` and `groth16 prove`.

    The witness file is the input JSON; the proof is produced with the
    synthetic trapdoor for the circuit named by the .zkey file.
    """

    def __init__(
        self,
        keys: Dict[ProofType, SyntheticGroth16],
        *,
        returncode: int = 0,
        stderr: str = "",
        signals_override: Optional[Sequence[int]] = None,
    ) -> None:
        self.keys = keys
        self.returncode = returncode
        self.stderr = stderr
        self.signals_override = signals_override
        self.calls = []

    def __call__(self, command, **kwargs):
        self.calls.append(list(command))
        if self.returncode != 0:
            return subprocess.CompletedProcess(command, self.returncode, "", self.stderr)

        if "wtns" in command:
            input_path, witness_path = Path(command[-2]), Path(command[-1])
            witness_path.write_text(input_path.read_text(encoding="utf-8"), encoding="utf-8")
        else:
            zkey_path, witness_path = Path(command[-4]), Path(command[-3])
            proof_path, public_path = Path(command[-2]), Path(command[-1])
            spec = next(
                s for s in CIRCUIT_REGISTRY.values() if s.circuit_name == zkey_path.stem
            )
            circuit_input = json.loads(witness_path.read_text(encoding="utf-8"))
            signals = [int(circuit_input[name]) for name in spec.public_signals]
            if self.signals_override is not None:
                signals = list(self.signals_override)
            proof = self.keys[spec.proof_type].prove(signals)
            proof_path.write_text(json.dumps(proof), encoding="utf-8")
            public_path.write_text(json.dumps([str(s) for s in signals]), encoding="utf-8")
        return subprocess.CompletedProcess(command, 0, "", "")


@pytest.fixture
def fake_snarkjs(groth16_keys) -> FakeSnarkjs:
    return FakeSnarkjs(groth16_keys)


@pytest.fixture
def make_fake_snarkjs(groth16_keys):
    def _make(**kwargs) -> FakeSnarkjs:
        return FakeSnarkjs(groth16_keys, **kwargs)

    return _make
