"""Compliance rule configuration loaded from YAML."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, FrozenSet, Mapping, Optional

import yaml

from .assembler import ComplianceWeights, check_jurisdiction_code
from .config import DEFAULT_TREE_DEPTH, MAX_TREE_DEPTH, VERIFIER_MODES
from .exceptions import ConfigurationError


@dataclass(frozen=True)
class ComplianceRules:
    """
    Public parameters a verifier imposes on holders.

    Attributes:
        weights: Aggregation weights for kyc, aml, jurisdiction, accreditation
        minimum_compliance_level: Threshold before scaling by COMPLIANCE_SCALE
        allowed_jurisdictions: Jurisdiction codes accepted by the jurisdiction proof
        minimum_accreditation: Minimum accreditation level
        tree_depth: Depth of whitelist/blacklist trees
        verifier_mode: "mock" or "real"; None defers to feature flags
        build_dir: Circuit artifact directory; None defers to the environment
    """

    weights: ComplianceWeights = field(
        default_factory=lambda: ComplianceWeights(25, 25, 25, 25)
    )
    minimum_compliance_level: int = 50
    allowed_jurisdictions: FrozenSet[int] = frozenset()
    minimum_accreditation: int = 0
    tree_depth: int = DEFAULT_TREE_DEPTH
    verifier_mode: Optional[str] = None
    build_dir: Optional[str] = None


def rules_from_dict(data: Mapping[str, Any]) -> ComplianceRules:
    """
    Validate a rules mapping.

    Raises:
        ConfigurationError: On unknown keys or invalid values
    """
    if data is None:
        return ComplianceRules()
    if not isinstance(data, Mapping):
        raise ConfigurationError("rules must be a mapping")

    known = {
        "weights",
        "minimum_compliance_level",
        "allowed_jurisdictions",
        "minimum_accreditation",
        "tree_depth",
        "verifier_mode",
        "build_dir",
    }
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(f"unknown rule keys: {', '.join(sorted(unknown))}")

    defaults = ComplianceRules()
    try:
        weights = data.get("weights")
        if weights is not None:
            if not isinstance(weights, Mapping):
                raise ConfigurationError("weights must be a mapping")
            weights = ComplianceWeights(
                kyc=weights.get("kyc", 0),
                aml=weights.get("aml", 0),
                jurisdiction=weights.get("jurisdiction", 0),
                accreditation=weights.get("accreditation", 0),
            )
        allowed = frozenset(
            check_jurisdiction_code(code)
            for code in data.get("allowed_jurisdictions") or ()
        )
        minimum_level = _non_negative(
            data.get("minimum_compliance_level", defaults.minimum_compliance_level),
            "minimum_compliance_level",
        )
        minimum_accreditation = _non_negative(
            data.get("minimum_accreditation", defaults.minimum_accreditation),
            "minimum_accreditation",
        )
        depth = _non_negative(data.get("tree_depth", defaults.tree_depth), "tree_depth")
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"invalid rules: {exc}") from exc

    if not 1 <= depth <= MAX_TREE_DEPTH:
        raise ConfigurationError(f"tree_depth must be in 1..{MAX_TREE_DEPTH}")

    mode = data.get("verifier_mode")
    if mode is not None and mode not in VERIFIER_MODES:
        raise ConfigurationError(
            f"verifier_mode must be one of {', '.join(VERIFIER_MODES)}"
        )

    build_dir = data.get("build_dir")
    return ComplianceRules(
        weights=weights or defaults.weights,
        minimum_compliance_level=minimum_level,
        allowed_jurisdictions=allowed,
        minimum_accreditation=minimum_accreditation,
        tree_depth=depth,
        verifier_mode=mode,
        build_dir=str(build_dir) if build_dir is not None else None,
    )


def load_rules(path: Path | str) -> ComplianceRules:
    """
    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"unable to load rules from {path}") from exc
    return rules_from_dict(data)


def _non_negative(value: Any, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{label} must be int")
    if value < 0:
        raise ValueError(f"{label} must be non-negative")
    return value
