"""Resolve compiled circuit artifacts and load verification keys."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from ..config import BUILD_DIR_ENV_VAR, DEFAULT_BUILD_DIR, MAX_VK_BYTES
from ..exceptions import CircuitArtifactMissing, MalformedVerificationKey
from ..statements import get_circuit_spec
from .verification_key import VerificationKey


@dataclass(frozen=True)
class CircuitArtifacts:
    circuit_name: str
    wasm_path: Path
    zkey_path: Path
    vkey_path: Path


class ArtifactResolver:
    """
    Locate per-circuit artifacts under a build directory.

    Layout (snarkjs/circom convention):
        <base>/<name>/<name>_js/<name>.wasm
        <base>/<name>/<name>.zkey
        <base>/<name>/<name>_vkey.json
    """

    def __init__(self, base_dir: Path | str | None = None) -> None:
        self._base_dir = Path(base_dir) if base_dir else _default_build_dir()

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def paths(self, circuit_name: str) -> CircuitArtifacts:
        circuit_dir = self._base_dir / circuit_name
        return CircuitArtifacts(
            circuit_name=circuit_name,
            wasm_path=circuit_dir / f"{circuit_name}_js" / f"{circuit_name}.wasm",
            zkey_path=circuit_dir / f"{circuit_name}.zkey",
            vkey_path=circuit_dir / f"{circuit_name}_vkey.json",
        )

    def resolve_prover_inputs(self, circuit_name: str) -> CircuitArtifacts:
        """
        Raises:
            CircuitArtifactMissing: If the witness calculator or proving key
                is absent
        """
        artifacts = self.paths(circuit_name)
        _require_files(
            (artifacts.wasm_path, artifacts.zkey_path),
            f"{circuit_name} prover artifacts",
        )
        return artifacts

    def resolve_vk(self, circuit_name: str) -> Path:
        artifacts = self.paths(circuit_name)
        _require_files((artifacts.vkey_path,), f"{circuit_name} verification key")
        return artifacts.vkey_path

    def load_verification_key(self, proof_type) -> VerificationKey:
        """
        Load and check the verification key for a proof type.

        Raises:
            CircuitArtifactMissing: If the key file is absent
            MalformedVerificationKey: If it is unreadable, too large, or its
                public-input count differs from the circuit convention
        """
        spec = get_circuit_spec(proof_type)
        path = self.resolve_vk(spec.circuit_name)
        if path.stat().st_size > MAX_VK_BYTES:
            raise MalformedVerificationKey(f"{path} exceeds size limit")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise MalformedVerificationKey(f"unable to read {path}") from exc
        return VerificationKey.from_json(
            data, expected_public_inputs=spec.public_signal_count
        )


def _default_build_dir() -> Path:
    return Path(os.getenv(BUILD_DIR_ENV_VAR, DEFAULT_BUILD_DIR))


def _require_files(paths: Iterable[Path], label: str) -> None:
    missing = [p for p in paths if not p.is_file()]
    if missing:
        raise CircuitArtifactMissing(
            f"Unable to resolve {label}. Missing: {', '.join(str(p) for p in missing)}"
        )
