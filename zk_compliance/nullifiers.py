"""
Nullifier derivation and single-use tracking.

Nullifiers bind a hidden identity to a tree root (and, for non-membership
queries, a verifier challenge). They are deterministic per input tuple so a
consumer can refuse a second use; they reveal nothing about the identity.

    whitelist: H(identity, root)
    blacklist: H(identity, root, challenge)

The challenge scopes blacklist nullifiers to one query or compliance epoch.
Without it, repeated non-membership checks of the same hidden identity would
share a nullifier and could be correlated.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional, Set

from .config import FIELD_ELEMENT_BYTES
from .exceptions import NullifierReusedError
from .hashing import HashEngine, check_field_element
from .security import new_challenge
from .statements import ProofType, parse_proof_type

logger = logging.getLogger(__name__)

_CHALLENGE_DOMAIN = b"ZK_COMPLIANCE_V1_CHALLENGE"


class NullifierDeriver:
    """Derive nullifiers with a shared HashEngine."""

    def __init__(self, engine: HashEngine) -> None:
        self.engine = engine

    def whitelist(self, identity: int, root: int) -> int:
        return self.engine.hash(
            check_field_element(identity, "identity"),
            check_field_element(root, "root"),
        )

    def blacklist(self, identity: int, root: int, challenge: int) -> int:
        return self.engine.hash(
            check_field_element(identity, "identity"),
            check_field_element(root, "root"),
            check_field_element(challenge, "challenge"),
        )

    def derive(
        self,
        proof_type,
        identity: int,
        root: int,
        challenge: Optional[int] = None,
    ) -> int:
        """
        Dispatch on proof type.

        Raises:
            ValueError: If a blacklist nullifier is requested without a
                challenge, or the proof type has no nullifier
        """
        proof_type = parse_proof_type(proof_type)
        if proof_type is ProofType.WHITELIST:
            return self.whitelist(identity, root)
        if proof_type is ProofType.BLACKLIST:
            if challenge is None:
                raise ValueError("blacklist nullifiers require a challenge")
            return self.blacklist(identity, root, challenge)
        raise ValueError(f"{proof_type.value} proofs do not carry a nullifier")

    def challenge_for_epoch(self, root: int, epoch: int) -> int:
        """Deterministic challenge shared by every query in one epoch."""
        check_field_element(root, "root")
        if isinstance(epoch, bool) or not isinstance(epoch, int) or epoch < 0:
            raise ValueError("epoch must be a non-negative int")
        data = (
            _CHALLENGE_DOMAIN
            + root.to_bytes(FIELD_ELEMENT_BYTES, "big")
            + epoch.to_bytes(8, "big")
        )
        return self.engine.keccak_to_field(data)

    @staticmethod
    def fresh_challenge() -> int:
        """Random challenge for a one-off query."""
        return new_challenge()


class NullifierLedger:
    """
    At-most-one-use set of nullifiers.

    Example:
        >>> ledger = NullifierLedger()
        >>> ledger.consume(nullifier)
        >>> ledger.consume(nullifier)  # raises NullifierReusedError
    """

    def __init__(self) -> None:
        self._spent: Set[int] = set()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._spent)

    def is_spent(self, nullifier: int) -> bool:
        return nullifier in self._spent

    def consume(self, nullifier: int) -> None:
        check_field_element(nullifier, "nullifier")
        with self._lock:
            if nullifier in self._spent:
                raise NullifierReusedError("nullifier already used")
            self._spent.add(nullifier)
        logger.debug("Nullifier consumed (%d spent)", len(self._spent))
