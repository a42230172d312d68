"""Tests for YAML compliance rules and the claim set."""

import pytest

from zk_compliance.assembler import ComplianceWeights
from zk_compliance.claims import Claim, ClaimSet, ClaimTopic, scores_from_claims
from zk_compliance.exceptions import ClaimNotFound, ConfigurationError, PreCheckError
from zk_compliance.rules import ComplianceRules, load_rules, rules_from_dict

RULES_YAML = """
weights:
  kyc: 30
  aml: 30
  jurisdiction: 20
  accreditation: 20
minimum_compliance_level: 50
allowed_jurisdictions: [1, 3, 5]
minimum_accreditation: 3
tree_depth: 16
verifier_mode: mock
"""


def test_load_rules_from_yaml(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text(RULES_YAML, encoding="utf-8")
    rules = load_rules(path)
    assert rules.weights == ComplianceWeights(30, 30, 20, 20)
    assert rules.minimum_compliance_level == 50
    assert rules.allowed_jurisdictions == frozenset({1, 3, 5})
    assert rules.minimum_accreditation == 3
    assert rules.tree_depth == 16
    assert rules.verifier_mode == "mock"
    assert rules.build_dir is None


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text("", encoding="utf-8")
    assert load_rules(path) == ComplianceRules()


def test_missing_file_is_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError, match="unable to load"):
        load_rules(tmp_path / "missing.yaml")


def test_invalid_yaml_is_configuration_error(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text("weights: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_rules(path)


@pytest.mark.parametrize(
    "data, match",
    [
        ({"threshold": 5}, "unknown rule keys"),
        ({"weights": [1, 2]}, "mapping"),
        ({"weights": {"kyc": -1}}, "invalid rules"),
        ({"allowed_jurisdictions": [300]}, "invalid rules"),
        ({"minimum_compliance_level": "high"}, "invalid rules"),
        ({"tree_depth": 0}, "tree_depth"),
        ({"verifier_mode": "lenient"}, "verifier_mode"),
    ],
)
def test_invalid_rules_rejected(data, match):
    with pytest.raises(ConfigurationError, match=match):
        rules_from_dict(data)


def test_rules_must_be_mapping():
    with pytest.raises(ConfigurationError):
        rules_from_dict([1, 2, 3])


def _claims(**values):
    claims = ClaimSet()
    for name, value in values.items():
        claims.add(Claim(ClaimTopic[name.upper()], value, issuer="issuer-1"))
    return claims


def test_scores_from_claims():
    claims = _claims(kyc=90, aml=85, residence=95, accreditation=80)
    scores = scores_from_claims(claims)
    assert scores.as_tuple() == (90, 85, 95, 80)


def test_missing_claim_is_default_deny():
    claims = _claims(kyc=90, aml=85, residence=95)
    with pytest.raises(ClaimNotFound, match="ACCREDITATION") as excinfo:
        scores_from_claims(claims)
    assert isinstance(excinfo.value, PreCheckError)


def test_latest_claim_wins():
    claims = _claims(kyc=10)
    claims.add(Claim(ClaimTopic.KYC, 70))
    assert claims.require(ClaimTopic.KYC).value == 70
    assert len(claims) == 2
    assert [c.value for c in claims] == [10, 70]


def test_claim_topic_coercion():
    claim = Claim(6, 50)
    assert claim.topic is ClaimTopic.KYC
    assert ClaimSet([claim]).find(6) is claim
    assert ClaimSet().find(ClaimTopic.AML) is None
    with pytest.raises(ValueError):
        Claim(99, 1)
    with pytest.raises(TypeError):
        Claim(ClaimTopic.KYC, "50")
