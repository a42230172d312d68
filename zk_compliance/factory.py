"""
Verifier factory.

WARNING: the mock verifier performs no cryptography. It is for integration
testing only and must not be used to accept real compliance claims.
"""

from __future__ import annotations

import importlib
import logging
from typing import Final, Mapping, Optional

from .exceptions import ConfigurationError
from .feature_flags import get_verifier_mode
from .rules import ComplianceRules
from .snark.assets import ArtifactResolver
from .snark.verification_key import VerificationKey
from .snark.verifier import ProofVerifier, VerificationGateway
from .statements import ProofType

logger = logging.getLogger(__name__)

VERIFIER_REGISTRY: Final[dict[str, str]] = {
    "mock": "zk_compliance.snark.verifier.MockVerifier",
    "real": "zk_compliance.snark.verifier.RealVerifier",
}


def _load_verifier_class(mode: str) -> type[ProofVerifier]:
    import_path = VERIFIER_REGISTRY[mode]
    module_path, _, class_name = import_path.rpartition(".")
    if not module_path or not class_name:
        raise ValueError(f"Invalid verifier import path for {mode!r}: {import_path!r}")

    try:
        module = importlib.import_module(module_path)
    except ModuleNotFoundError as exc:
        raise ImportError(
            f"Unable to import verifier module {module_path!r} for {mode!r}"
        ) from exc

    try:
        verifier_cls = getattr(module, class_name)
    except AttributeError as exc:
        raise ImportError(
            f"Verifier class {class_name!r} not found in module {module_path!r}"
        ) from exc

    if not isinstance(verifier_cls, type) or not issubclass(verifier_cls, ProofVerifier):
        raise TypeError(f"Verifier reference {import_path!r} is not a ProofVerifier")

    return verifier_cls


def load_verification_keys(
    resolver: Optional[ArtifactResolver] = None,
) -> dict[ProofType, VerificationKey]:
    """
    Load one verification key per proof type.

    Raises:
        CircuitArtifactMissing: If any key file is absent
        MalformedVerificationKey: If any key does not match its circuit
    """
    resolver = resolver or ArtifactResolver()
    keys = {pt: resolver.load_verification_key(pt) for pt in ProofType}
    logger.info("Loaded %d verification keys from %s", len(keys), resolver.base_dir)
    return keys


def get_verifier(
    mode: str | None = None,
    *,
    verification_keys: Optional[Mapping[ProofType, VerificationKey]] = None,
    resolver: Optional[ArtifactResolver] = None,
) -> ProofVerifier:
    """
    Return a verifier for `mode` (feature flags when omitted).

    Real mode uses `verification_keys` if given, otherwise loads every key
    through `resolver`.

    Raises:
        ValueError: If the mode is invalid
        ConfigurationError: If real-mode keys cannot be loaded
    """
    resolved = get_verifier_mode(prefer=mode)
    verifier_cls = _load_verifier_class(resolved)

    if resolved == "mock":
        logger.warning("Using mock verifier: proofs are not checked cryptographically")
        return verifier_cls()

    if verification_keys is None:
        verification_keys = load_verification_keys(resolver)
    if not verification_keys:
        raise ConfigurationError("real verifier requires at least one verification key")
    return verifier_cls(verification_keys)


def build_gateway(
    mode: str | None = None,
    *,
    verification_keys: Optional[Mapping[ProofType, VerificationKey]] = None,
    resolver: Optional[ArtifactResolver] = None,
) -> VerificationGateway:
    """Build an immutable VerificationGateway for the resolved mode."""
    verifier = get_verifier(
        mode, verification_keys=verification_keys, resolver=resolver
    )
    return VerificationGateway(verifier)


def gateway_for_rules(rules: ComplianceRules) -> VerificationGateway:
    """Gateway using the verifier mode and build directory named in `rules`."""
    return build_gateway(rules.verifier_mode, resolver=ArtifactResolver(rules.build_dir))
