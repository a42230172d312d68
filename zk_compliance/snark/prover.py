"""Groth16 proof generation through the snarkjs CLI."""

from __future__ import annotations

import json
import logging
import subprocess
import tempfile
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..assembler import CircuitWitness
from ..config import DEFAULT_PROVER_TIMEOUT_SEC, SNARKJS_COMMAND
from ..exceptions import (
    ProofGenerationFailed,
    ProofGenerationTimeout,
    ProverUnavailable,
)
from ..statements import ProofType
from .assets import ArtifactResolver

logger = logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]


@dataclass(frozen=True)
class GeneratedProof:
    """Raw snarkjs output for one witness."""

    proof_type: ProofType
    circuit_name: str
    proof: Dict[str, Any]
    public_signals: Tuple[int, ...]
    elapsed: float


class ProofGenerator:
    """
    Compute witnesses and Groth16 proofs for assembled circuit inputs.

    Each call works in its own temporary directory; artifacts are only read,
    so independent calls can run concurrently.

    Args:
        resolver: Locates the .wasm and .zkey for each circuit
        snarkjs_command: argv prefix used to invoke snarkjs
        timeout: Per-step timeout in seconds
        runner: subprocess.run compatible callable
    """

    def __init__(
        self,
        resolver: Optional[ArtifactResolver] = None,
        *,
        snarkjs_command: Sequence[str] = SNARKJS_COMMAND,
        timeout: float = DEFAULT_PROVER_TIMEOUT_SEC,
        runner: Optional[Runner] = None,
    ) -> None:
        self.resolver = resolver or ArtifactResolver()
        self.snarkjs_command = tuple(snarkjs_command)
        self.timeout = timeout
        self._run = runner or subprocess.run

    def generate(self, witness: CircuitWitness) -> GeneratedProof:
        """
        Prove one witness.

        Raises:
            CircuitArtifactMissing: If the .wasm or .zkey is absent
            ProofGenerationTimeout: If snarkjs exceeds the timeout
            ProverUnavailable: If the snarkjs executable is missing
            ProofGenerationFailed: If snarkjs fails, or its public signals
                differ in count or value from the witness
        """
        artifacts = self.resolver.resolve_prover_inputs(witness.circuit_name)
        reason = witness.precheck_reason or "proof generation failed"
        started = time.monotonic()

        with tempfile.TemporaryDirectory(prefix="zkc-") as tmp_dir:
            tmp = Path(tmp_dir)
            input_path = tmp / "input.json"
            witness_path = tmp / "witness.wtns"
            proof_path = tmp / "proof.json"
            public_path = tmp / "public.json"
            input_path.write_text(witness.to_json(), encoding="utf-8")

            self._snarkjs(
                [
                    "wtns",
                    "calculate",
                    str(artifacts.wasm_path),
                    str(input_path),
                    str(witness_path),
                ],
                reason,
            )
            self._snarkjs(
                [
                    "groth16",
                    "prove",
                    str(artifacts.zkey_path),
                    str(witness_path),
                    str(proof_path),
                    str(public_path),
                ],
                reason,
            )
            proof, signals = _read_outputs(proof_path, public_path)

        expected = witness.spec.public_signal_count
        if len(signals) != expected:
            raise ProofGenerationFailed(
                "unexpected public signal count",
                f"{witness.circuit_name} produced {len(signals)}, expected {expected}",
            )
        if tuple(signals) != tuple(witness.public_signals):
            raise ProofGenerationFailed(
                "public signals do not match witness",
                f"{witness.circuit_name} exposed {len(signals)} signals that differ "
                "from the assembled statement",
            )

        elapsed = time.monotonic() - started
        logger.info("Generated %s proof in %.2fs", witness.circuit_name, elapsed)
        return GeneratedProof(
            proof_type=witness.proof_type,
            circuit_name=witness.circuit_name,
            proof=proof,
            public_signals=tuple(signals),
            elapsed=elapsed,
        )

    def generate_many(
        self, witnesses: Iterable[CircuitWitness], max_workers: Optional[int] = None
    ) -> List[GeneratedProof]:
        """Prove independent witnesses in parallel, preserving order."""
        witnesses = list(witnesses)
        if not witnesses:
            return []
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(self.generate, witnesses))

    def _snarkjs(self, args: List[str], reason: str) -> None:
        command = [*self.snarkjs_command, *args]
        try:
            result = self._run(
                command,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise ProofGenerationTimeout(
                f"snarkjs {args[0]} exceeded {self.timeout}s"
            ) from exc
        except FileNotFoundError as exc:
            raise ProverUnavailable(
                f"snarkjs executable not found: {self.snarkjs_command[0]}"
            ) from exc

        if result.returncode != 0:
            stderr = (result.stderr or "").strip() or "unknown snarkjs error"
            logger.warning("snarkjs %s failed: %s", " ".join(args[:2]), stderr)
            raise ProofGenerationFailed(reason, stderr)


def _read_outputs(proof_path: Path, public_path: Path) -> Tuple[Dict[str, Any], List[int]]:
    try:
        proof = json.loads(proof_path.read_text(encoding="utf-8"))
        public = json.loads(public_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ProofGenerationFailed("unreadable snarkjs output", str(exc)) from exc
    if not isinstance(proof, dict) or not isinstance(public, list):
        raise ProofGenerationFailed("unexpected snarkjs output shape")
    try:
        signals = [int(s) for s in public]
    except (TypeError, ValueError) as exc:
        raise ProofGenerationFailed("non-integer public signal", str(exc)) from exc
    return proof, signals
