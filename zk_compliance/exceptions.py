"""
Custom exceptions for compliance proofs.

Four failure classes are kept apart:
    - domain pre-check failures, raised before any cryptographic work
    - artifact/configuration failures, fatal until an operator intervenes
    - proof-generation failures, retryable after correcting the witness
    - verification rejection, which is never an exception (verifiers return False)
"""


class ComplianceProofError(Exception):
    """Base exception for compliance proof errors."""

    pass


# ============================================================================
# DOMAIN PRE-CHECKS
# ============================================================================


class PreCheckError(ComplianceProofError):
    """A domain check failed before the prover was invoked."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class IdentityNotInSet(PreCheckError):
    """Identity leaf is not present in the whitelist snapshot."""

    pass


class IdentityBlacklisted(PreCheckError):
    """Identity leaf is present in the blacklist snapshot."""

    pass


class JurisdictionNotAllowed(PreCheckError):
    """Jurisdiction code is not in the allowed set."""

    pass


class AccreditationBelowMinimum(PreCheckError):
    """Accreditation level is below the required minimum."""

    pass


class InsufficientComplianceScore(PreCheckError):
    """Weighted compliance score is below the scaled threshold."""

    def __init__(self, weighted_sum: int, required: int) -> None:
        super().__init__(
            f"Insufficient compliance score: {weighted_sum} < {required} "
            "(minimum required)"
        )
        self.weighted_sum = weighted_sum
        self.required = required


class ClaimNotFound(PreCheckError):
    """A required claim topic is absent from the holder's claims."""

    pass


# ============================================================================
# CONFIGURATION / ARTIFACTS
# ============================================================================


class ConfigurationError(ComplianceProofError):
    """Configuration error."""

    pass


class CircuitArtifactMissing(ConfigurationError):
    """Witness calculator, proving key or verification key is missing."""

    pass


class MalformedVerificationKey(ConfigurationError):
    """Verification key JSON does not match the circuit convention."""

    pass


class ProverUnavailable(ConfigurationError):
    """The snarkjs executable cannot be started."""

    pass


# ============================================================================
# PROOF GENERATION
# ============================================================================


class ProofGenerationError(ComplianceProofError):
    """Error during proof generation."""

    pass


class ProofGenerationFailed(ProofGenerationError):
    """Witness or proof computation failed."""

    def __init__(self, reason: str, detail: str = "") -> None:
        message = f"{reason}: {detail}" if detail else reason
        super().__init__(message)
        self.reason = reason
        self.detail = detail


class ProofGenerationTimeout(ProofGenerationError):
    """Proof generation exceeded its time budget."""

    pass


# ============================================================================
# STRUCTURAL
# ============================================================================


class HashEngineError(ComplianceProofError):
    """Hash backend failed to produce a digest."""

    pass


class MerkleTreeError(ComplianceProofError):
    """Structural Merkle tree error (empty set, depth or index out of range)."""

    pass


class LeafNotFoundError(ComplianceProofError, LookupError):
    """Requested leaf is not present in the tree."""

    pass


class SnapshotNotFound(LeafNotFoundError):
    """No snapshot is registered under the requested root."""

    pass


class MalformedProofError(ComplianceProofError, ValueError):
    """Proof or public signals do not have the expected shape."""

    pass


class NullifierReusedError(ComplianceProofError):
    """Nullifier has already been consumed."""

    pass
