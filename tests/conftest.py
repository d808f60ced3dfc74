"""Shared fixtures for policy-scout tests."""

from __future__ import annotations

import os

# Use litellm's bundled model cost map instead of fetching it over the network at import.
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

import pytest

from policy_scout.classification import PolicyClassifier
from policy_scout.models import (
    ClassificationResult,
    PolicyDocument,
    PolicyType,
    UserProfile,
)
from policy_scout.rules import PolicyRulebook, load_rulebook

AUTO_POLICY_TEXT = (
    "Auto insurance policy for a private passenger car. Motor vehicle: automobile. "
    "Bodily injury liability $25,000. Deductible: $2,500."
)


@pytest.fixture
def rulebook() -> PolicyRulebook:
    """The packaged rulebook."""
    return load_rulebook()


@pytest.fixture
def classifier(rulebook: PolicyRulebook) -> PolicyClassifier:
    return PolicyClassifier(rulebook)


@pytest.fixture
def auto_classification() -> ClassificationResult:
    return ClassificationResult(primary_type=PolicyType.AUTO, confidence=0.9)


@pytest.fixture
def auto_policy() -> PolicyDocument:
    """Auto policy with a thin bodily-injury limit and a $2,500 deductible."""
    return PolicyDocument(
        extracted_text=AUTO_POLICY_TEXT,
        structured_fields={
            "liabilityLimits": "25,000",
            "deductible": "2,500",
            "policyType": "auto",
        },
    )


@pytest.fixture
def wealthy_profile() -> UserProfile:
    return UserProfile.model_validate({"assets": 500000, "income": 120000, "emergencyFund": 500})
