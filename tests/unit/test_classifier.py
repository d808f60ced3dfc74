"""Tests for keyword/pattern policy classification."""

from __future__ import annotations

import pytest

from policy_scout.classification import PolicyClassifier
from policy_scout.classification.classifier import EXCLUSION_PENALTY
from policy_scout.models import PolicyType
from policy_scout.rules import PolicyTypeRules

_HOME_TEXT = (
    "Homeowners policy. Dwelling coverage for the house at 12 Elm St, "
    "personal property, liability and additional living expenses. Fire and theft covered."
)


def _make_rules(**overrides: object) -> PolicyTypeRules:
    data: dict[str, object] = {
        "label": "Test",
        "category": "test",
        "required_keywords": ["alpha", "beta"],
        "optional_keywords": ["gamma", "delta"],
        "exclusion_keywords": ["omega"],
        "structured_patterns": {"policyType": ["test"]},
    }
    data.update(overrides)
    return PolicyTypeRules(**data)


class TestScoreType:
    def test_full_match_is_one(self):
        score = PolicyClassifier.score_type(_make_rules(), "alpha beta gamma delta", {"policyType": "Test policy"})
        assert score == pytest.approx(1.0)

    def test_weights(self):
        # required 1/2 * 0.4 + optional 1/2 * 0.3 = 0.35 of 1.0
        score = PolicyClassifier.score_type(_make_rules(), "alpha gamma", {})
        assert score == pytest.approx(0.35)

    def test_exclusion_penalty_not_normalized_away(self):
        clean = PolicyClassifier.score_type(_make_rules(), "alpha beta gamma", {})
        penalized = PolicyClassifier.score_type(_make_rules(), "alpha beta gamma omega", {})
        assert clean - penalized == pytest.approx(EXCLUSION_PENALTY)

    def test_skips_unconfigured_components(self):
        rules = _make_rules(optional_keywords=[], structured_patterns={})
        assert PolicyClassifier.score_type(rules, "alpha beta", {}) == pytest.approx(1.0)

    def test_clamped_at_zero(self):
        assert PolicyClassifier.score_type(_make_rules(), "omega", {}) == 0.0

    def test_no_signals_configured(self):
        rules = _make_rules(required_keywords=[], optional_keywords=[], structured_patterns={})
        assert PolicyClassifier.score_type(rules, "alpha", {}) == 0.0


class TestClassify:
    def test_auto_policy(self, classifier):
        result = classifier.classify(
            "Auto insurance policy for a private passenger car. Motor vehicle: automobile. "
            "Bodily injury liability $25,000.",
            {"policyType": "auto", "coverageType": "auto"},
        )
        assert result.primary_type is PolicyType.AUTO
        assert result.is_confident
        assert result.confidence == pytest.approx(0.4 + 0.3 * 2 / 11 + 0.3, abs=1e-6)

    def test_home_policy(self, classifier):
        result = classifier.classify(_HOME_TEXT, {"policyType": "Homeowners"})
        assert result.primary_type is PolicyType.HOME
        assert result.candidates[0].policy_type is PolicyType.HOME

    def test_empty_text_is_unknown(self, classifier):
        result = classifier.classify("", {})
        assert result.primary_type is PolicyType.UNKNOWN
        assert result.confidence == 0.0
        assert all(c.confidence == 0.0 for c in result.candidates)
        assert result.success

    def test_below_threshold_keeps_candidates(self, classifier):
        result = classifier.classify("my car", {})
        assert result.primary_type is PolicyType.UNKNOWN
        assert not result.is_confident
        assert result.candidates[0].policy_type is PolicyType.AUTO
        assert result.candidates[0].confidence > 0

    def test_candidates_sorted_descending(self, classifier):
        result = classifier.classify(_HOME_TEXT, {})
        scores = [c.confidence for c in result.candidates]
        assert scores == sorted(scores, reverse=True)
        assert len(result.candidates) == 8

    @pytest.mark.parametrize("text", [None, 42, "x" * 50_000, "\x00\x01"])
    def test_never_raises_and_confidence_bounded(self, classifier, text):
        result = classifier.classify(text, {"policyType": object()})
        assert 0.0 <= result.confidence <= 1.0
        assert result.is_confident == (result.confidence >= 0.6)

    def test_custom_threshold(self, rulebook):
        strict = PolicyClassifier(rulebook, threshold=0.95)
        result = strict.classify(_HOME_TEXT, {})
        assert result.threshold == 0.95
        assert result.primary_type is PolicyType.UNKNOWN

    def test_internal_failure_reported_not_raised(self, classifier, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("bad table")

        monkeypatch.setattr(classifier, "_score_all", boom)
        result = classifier.classify("auto", {})
        assert not result.success
        assert result.error == "bad table"
        assert result.primary_type is PolicyType.UNKNOWN


class TestExplain:
    def test_explains_primary(self, classifier):
        result = classifier.classify(_HOME_TEXT, {"policyType": "home"})
        reasons = classifier.explain(result, _HOME_TEXT)
        assert reasons[-1].startswith("Classified as Home Insurance")
        assert any("dwelling" in r for r in reasons)

    def test_explains_unknown(self, classifier):
        result = classifier.classify("", {})
        assert "threshold" in classifier.explain(result, "")[0]
