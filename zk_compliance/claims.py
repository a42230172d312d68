"""
Holder-side claims feeding the compliance aggregation proof.

A missing claim is an explicit failure (ClaimNotFound). It never defaults to a
passing value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterator, List, Optional

from .assembler import ComplianceScores
from .exceptions import ClaimNotFound


class ClaimTopic(IntEnum):
    """Claim topic identifiers used by identity registries."""

    IDENTITY = 1
    BIOMETRIC = 2
    RESIDENCE = 3
    REGISTRY = 4
    ACCREDITATION = 5
    KYC = 6
    AML = 7
    INVESTOR_TYPE = 8


@dataclass(frozen=True)
class Claim:
    topic: ClaimTopic
    value: int
    issuer: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "topic", ClaimTopic(self.topic))
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError("claim value must be int")


@dataclass
class ClaimSet:
    """Ordered claims; later claims on a topic supersede earlier ones."""

    claims: List[Claim] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.claims)

    def __iter__(self) -> Iterator[Claim]:
        return iter(self.claims)

    def add(self, claim: Claim) -> None:
        self.claims.append(claim)

    def find(self, topic) -> Optional[Claim]:
        topic = ClaimTopic(topic)
        for claim in reversed(self.claims):
            if claim.topic is topic:
                return claim
        return None

    def require(self, topic) -> Claim:
        """
        Raises:
            ClaimNotFound: If no claim exists for the topic
        """
        claim = self.find(topic)
        if claim is None:
            raise ClaimNotFound(f"required claim missing: {ClaimTopic(topic).name}")
        return claim


def scores_from_claims(claims: ClaimSet) -> ComplianceScores:
    """
    Collect the four aggregation sub-scores.

    Raises:
        ClaimNotFound: If any of KYC, AML, RESIDENCE or ACCREDITATION is absent
    """
    return ComplianceScores(
        kyc=claims.require(ClaimTopic.KYC).value,
        aml=claims.require(ClaimTopic.AML).value,
        jurisdiction=claims.require(ClaimTopic.RESIDENCE).value,
        accreditation=claims.require(ClaimTopic.ACCREDITATION).value,
    )
