"""
Randomness for salts and challenges.

Salts bind hidden values into public commitments and must never repeat across
two different secret values, so they come from the OS CSPRNG with fork
detection.
"""

import hmac
import os
import secrets

from .config import SNARK_SCALAR_FIELD


class RandomnessSource:
    """
    OS-backed field element sampler that reseeds after a fork.

    Example:
        >>> rng = RandomnessSource()
        >>> salt = rng.random_field_element()
    """

    def __init__(self):
        self._pid = os.getpid()
        self._rng = secrets.SystemRandom()

    def _check_fork(self) -> None:
        # Worker processes in a prover pool must not share generator state.
        if os.getpid() != self._pid:
            self.__init__()

    def below(self, bound: int) -> int:
        """Uniform integer in [0, bound)."""
        if bound <= 1:
            raise ValueError(f"bound must be > 1, got {bound}")
        self._check_fork()
        return self._rng.randrange(0, bound)

    def random_field_element(self) -> int:
        """Non-zero element of the SNARK scalar field."""
        return 1 + self.below(SNARK_SCALAR_FIELD - 1)


_default_source = RandomnessSource()


def new_salt() -> int:
    """Fresh commitment salt."""
    return _default_source.random_field_element()


def new_challenge() -> int:
    """Fresh verifier challenge for a non-membership query."""
    return _default_source.random_field_element()


def constant_time_compare(a: bytes, b: bytes) -> bool:
    return hmac.compare_digest(a, b)
