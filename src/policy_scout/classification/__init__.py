"""Policy type classification."""

from policy_scout.classification.classifier import PolicyClassifier

__all__ = ["PolicyClassifier"]
