"""
Hash engine for tree construction, nullifiers and commitments.

Two hashes are exposed:
    - a circuit-friendly field hash (Poseidon over BN254, matching circomlib)
      used for every value the circuits recompute
    - Keccak-256 for off-circuit bookkeeping (identity derivation, challenges,
      proof hashes)

The field hash is pluggable. `PoseidonBridgeHasher` drives circomlibjs through
a bundled Node.js script in batch mode; `KeccakFieldHasher` reduces Keccak-256
into the scalar field and is meant for development setups without Node.js.
Proofs generated against real circuits require the Poseidon backend.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from eth_utils import keccak

from .config import (
    BRIDGE_BATCH_SIZE,
    BRIDGE_TIMEOUT_SEC,
    FIELD_ELEMENT_BYTES,
    NODE_BINARY,
    POSEIDON_MAX_INPUTS,
    SNARK_SCALAR_FIELD,
)
from .exceptions import HashEngineError
from .feature_flags import get_hash_backend

logger = logging.getLogger(__name__)

BRIDGE_SCRIPT = Path(__file__).resolve().parent / "bridge" / "poseidon_bridge.js"


def check_field_element(value, label: str = "value") -> int:
    """Return `value` if it is an integer in [0, SNARK_SCALAR_FIELD)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{label} must be int, got {type(value).__name__}")
    if value < 0 or value >= SNARK_SCALAR_FIELD:
        raise ValueError(f"{label} is outside the scalar field")
    return value


def _check_row(row: Sequence[int]) -> List[int]:
    if not 1 <= len(row) <= POSEIDON_MAX_INPUTS:
        raise ValueError(
            f"hash takes 1..{POSEIDON_MAX_INPUTS} inputs, got {len(row)}"
        )
    return [check_field_element(v, f"input[{i}]") for i, v in enumerate(row)]


class FieldHasher(ABC):
    """Hash rows of field elements to a single field element."""

    name: str = "abstract"

    @abstractmethod
    def hash_many(self, rows: Sequence[Sequence[int]]) -> List[int]:
        """Hash every row; rows are already range-checked."""


class KeccakFieldHasher(FieldHasher):
    """
    Keccak-256 over 32-byte big-endian words, reduced into the scalar field.

    Not circuit compatible. Suitable for mock-mode pipelines and tests.
    """

    name = "keccak"

    def hash_many(self, rows: Sequence[Sequence[int]]) -> List[int]:
        out = []
        for row in rows:
            data = b"".join(v.to_bytes(FIELD_ELEMENT_BYTES, "big") for v in row)
            out.append(int.from_bytes(keccak(data), "big") % SNARK_SCALAR_FIELD)
        return out


Runner = Callable[..., "subprocess.CompletedProcess[str]"]


class PoseidonBridgeHasher(FieldHasher):
    """
    circomlibjs Poseidon via a Node.js subprocess.

    Rows are sent in batches so that building a tree costs one process per
    level rather than one per node.

    Node resolves circomlibjs relative to the bridge script, then through
    NODE_PATH. Pass `node_path` (for example a project's node_modules) when
    the package is installed elsewhere.
    """

    name = "poseidon"

    def __init__(
        self,
        node_binary: str = NODE_BINARY,
        script_path: Path | str = BRIDGE_SCRIPT,
        *,
        timeout: float = BRIDGE_TIMEOUT_SEC,
        batch_size: int = BRIDGE_BATCH_SIZE,
        runner: Optional[Runner] = None,
        node_path: Optional[str] = None,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self._node_binary = node_binary
        self._script_path = Path(script_path)
        self._timeout = timeout
        self._batch_size = batch_size
        self._runner = runner or subprocess.run
        self._env = {**os.environ, "NODE_PATH": node_path} if node_path else None

    def hash_many(self, rows: Sequence[Sequence[int]]) -> List[int]:
        out: List[int] = []
        for start in range(0, len(rows), self._batch_size):
            out.extend(self._run_batch(rows[start:start + self._batch_size]))
        return out

    def _run_batch(self, rows: Sequence[Sequence[int]]) -> List[int]:
        payload = json.dumps({"inputs": [[str(v) for v in row] for row in rows]})
        try:
            result = self._runner(
                [self._node_binary, str(self._script_path)],
                input=payload,
                capture_output=True,
                text=True,
                check=False,
                timeout=self._timeout,
                env=self._env,
            )
        except FileNotFoundError as exc:
            raise HashEngineError(
                f"Node.js binary not found: {self._node_binary}"
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise HashEngineError("Poseidon bridge timeout") from exc

        if result.returncode != 0:
            stderr = (result.stderr or "").strip() or "unknown bridge error"
            raise HashEngineError(f"Poseidon bridge error: {stderr}")

        try:
            hashes = [int(h) for h in json.loads(result.stdout)["hashes"]]
        except (ValueError, KeyError, TypeError) as exc:
            raise HashEngineError("Poseidon bridge returned malformed output") from exc

        if len(hashes) != len(rows):
            raise HashEngineError(
                f"Poseidon bridge returned {len(hashes)} hashes for {len(rows)} rows"
            )
        return hashes


_BACKENDS = {
    "poseidon": PoseidonBridgeHasher,
    "keccak": KeccakFieldHasher,
}


class HashEngine:
    """
    Field hash plus Keccak helpers shared by every pipeline stage.

    Args:
        hasher: Explicit field hasher. When omitted, the backend named by
            `backend` (or the ZK_COMPLIANCE_HASH_BACKEND flag) is created.
        backend: "poseidon" or "keccak".
    """

    def __init__(
        self, hasher: Optional[FieldHasher] = None, *, backend: Optional[str] = None
    ) -> None:
        if hasher is None:
            hasher = _BACKENDS[get_hash_backend(backend)]()
        self._hasher = hasher

    @property
    def backend_name(self) -> str:
        return self._hasher.name

    def hash(self, *inputs: int) -> int:
        return self._hasher.hash_many([_check_row(inputs)])[0]

    def hash_many(self, rows: Iterable[Sequence[int]]) -> List[int]:
        checked = [_check_row(row) for row in rows]
        if not checked:
            return []
        return self._hasher.hash_many(checked)

    def hash_leaf(self, identity: int) -> int:
        return self.hash(identity)

    def hash_pair(self, left: int, right: int) -> int:
        return self.hash(left, right)

    def commitment(self, *values: int, salt: int) -> int:
        """H(values..., salt)."""
        return self.hash(*values, salt)

    @staticmethod
    def keccak(data: bytes) -> bytes:
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError(f"data must be bytes, got {type(data).__name__}")
        return keccak(bytes(data))

    @classmethod
    def keccak_to_field(cls, data: bytes) -> int:
        return int.from_bytes(cls.keccak(data), "big") % SNARK_SCALAR_FIELD

    @classmethod
    def identity_from_credential(cls, credential: str | bytes) -> int:
        """
        Derive an Identity from an external address or credential.

        Hex strings ("0x...") are decoded; other strings are UTF-8 encoded.
        """
        if isinstance(credential, str):
            if credential.startswith(("0x", "0X")):
                try:
                    data = bytes.fromhex(credential[2:])
                except ValueError as exc:
                    raise ValueError("credential is not valid hex") from exc
            else:
                data = credential.encode("utf-8")
        elif isinstance(credential, (bytes, bytearray)):
            data = bytes(credential)
        else:
            raise TypeError("credential must be str or bytes")
        if not data:
            raise ValueError("credential cannot be empty")
        return cls.keccak_to_field(data)
