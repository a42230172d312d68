"""
Unit tests for verifier selection and gateway construction.
"""

from __future__ import annotations

import dataclasses
import importlib

import pytest

from zk_compliance import factory
from zk_compliance.exceptions import CircuitArtifactMissing, ConfigurationError
from zk_compliance.feature_flags import set_verifier_mode
from zk_compliance.rules import ComplianceRules
from zk_compliance.snark.assets import ArtifactResolver
from zk_compliance.snark.verifier import (
    MockVerifier,
    ProofVerifier,
    RealVerifier,
    VerificationGateway,
)
from zk_compliance.statements import ProofType


def test_registry_entries_are_importable() -> None:
    for import_path in factory.VERIFIER_REGISTRY.values():
        module_path, _, class_name = import_path.rpartition(".")
        module = importlib.import_module(module_path)
        assert issubclass(getattr(module, class_name), ProofVerifier)


def test_mock_mode_returns_mock_verifier() -> None:
    assert isinstance(factory.get_verifier("mock"), MockVerifier)


def test_flag_override_selects_mock() -> None:
    set_verifier_mode("mock")
    assert factory.get_verifier().mode == "mock"


def test_real_mode_with_explicit_keys(groth16_keys) -> None:
    keys = {ProofType.JURISDICTION: groth16_keys[ProofType.JURISDICTION].vk}
    verifier = factory.get_verifier("real", verification_keys=keys)
    assert isinstance(verifier, RealVerifier)
    assert verifier.proof_types == [ProofType.JURISDICTION]


def test_real_mode_loads_every_key(artifact_dir) -> None:
    verifier = factory.get_verifier(resolver=ArtifactResolver(artifact_dir))
    assert isinstance(verifier, RealVerifier)
    assert set(verifier.proof_types) == set(ProofType)


def test_real_mode_without_artifacts_fails(tmp_path) -> None:
    with pytest.raises(CircuitArtifactMissing):
        factory.get_verifier("real", resolver=ArtifactResolver(tmp_path))


def test_real_mode_with_empty_keys_fails() -> None:
    with pytest.raises(ConfigurationError, match="at least one"):
        factory.get_verifier("real", verification_keys={})


def test_invalid_mode_raises_value_error() -> None:
    with pytest.raises(ValueError, match="Invalid verifier mode"):
        factory.get_verifier("lenient")


def test_build_gateway_is_immutable() -> None:
    gateway = factory.build_gateway("mock")
    assert isinstance(gateway, VerificationGateway)
    assert gateway.mode == "mock"
    with pytest.raises(dataclasses.FrozenInstanceError):
        gateway.verifier = MockVerifier()


def test_gateway_for_rules(artifact_dir) -> None:
    assert factory.gateway_for_rules(ComplianceRules(verifier_mode="mock")).mode == "mock"

    rules = ComplianceRules(verifier_mode="real", build_dir=str(artifact_dir))
    gateway = factory.gateway_for_rules(rules)
    assert gateway.mode == "real"
    assert set(gateway.verifier.proof_types) == set(ProofType)
