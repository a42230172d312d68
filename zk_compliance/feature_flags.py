"""
Feature flags for selecting the hash backend and the verifier mode.

WARNING: the verifier mode decides whether proofs are checked cryptographically.
The mock mode is for integration testing only and must never be used to accept
real compliance claims.
"""

from __future__ import annotations

import os
from typing import Final

from .config import (
    DEFAULT_HASH_BACKEND,
    DEFAULT_VERIFIER_MODE,
    HASH_BACKENDS,
    VERIFIER_MODES,
)

_HASH_ENV_VAR: Final[str] = "ZK_COMPLIANCE_HASH_BACKEND"
_MODE_ENV_VAR: Final[str] = "ZK_COMPLIANCE_VERIFIER_MODE"

_hash_backend_override: str | None = None
_verifier_mode_override: str | None = None


def _normalize(value: str | None, valid: tuple[str, ...], label: str) -> str | None:
    if value is None:
        return None

    if not isinstance(value, str):
        raise ValueError(
            f"Invalid {label}: {value!r}. Valid options: {', '.join(valid)}"
        )

    if value == "":
        return None

    value = value.strip().lower()
    if value not in valid:
        raise ValueError(
            f"Invalid {label}: {value!r}. Valid options: {', '.join(valid)}"
        )

    return value


def get_hash_backend(prefer: str | None = None) -> str:
    """
    Resolve the hash backend in precedence order.

    Args:
        prefer: Optional preferred backend name.

    Returns:
        "poseidon" or "keccak".

    Raises:
        ValueError: If a provided backend value is invalid.
    """
    preferred = _normalize(prefer, HASH_BACKENDS, "hash backend")
    if preferred is not None:
        return preferred

    if _hash_backend_override is not None:
        return _hash_backend_override

    env_backend = _normalize(os.getenv(_HASH_ENV_VAR), HASH_BACKENDS, "hash backend")
    if env_backend is not None:
        return env_backend

    return DEFAULT_HASH_BACKEND


def set_hash_backend(value: str | None) -> None:
    """Set in-memory hash backend override (testing only)."""
    global _hash_backend_override
    _hash_backend_override = _normalize(value, HASH_BACKENDS, "hash backend")


def get_verifier_mode(prefer: str | None = None) -> str:
    """
    Resolve the verifier mode in precedence order.

    Defaults to "real".
    """
    preferred = _normalize(prefer, VERIFIER_MODES, "verifier mode")
    if preferred is not None:
        return preferred

    if _verifier_mode_override is not None:
        return _verifier_mode_override

    env_mode = _normalize(os.getenv(_MODE_ENV_VAR), VERIFIER_MODES, "verifier mode")
    if env_mode is not None:
        return env_mode

    return DEFAULT_VERIFIER_MODE


def set_verifier_mode(value: str | None) -> None:
    """Set in-memory verifier mode override (testing only)."""
    global _verifier_mode_override
    _verifier_mode_override = _normalize(value, VERIFIER_MODES, "verifier mode")
