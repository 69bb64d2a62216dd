"""Tests for smile / neutral classification."""

import pytest

from backend.smile_engine.classifier import ExpressionClassifier, classify


def test_wider_than_threshold_is_smiling():
    assert classify(width=12, baseline=10, threshold=1.1) is True


def test_within_threshold_is_neutral():
    assert classify(width=10.5, baseline=10, threshold=1.1) is False


def test_exactly_at_threshold_is_neutral():
    assert classify(width=2.0, baseline=1.0, threshold=2.0) is False


def test_default_threshold():
    assert classify(1.15, 1.0) is True
    assert classify(1.05, 1.0) is False


class TestExpressionClassifier:

    def test_no_emission_before_calibration(self):
        clf = ExpressionClassifier()
        assert not clf.is_calibrated
        assert clf.evaluate(5.0) is None

    def test_default_baseline_used_until_calibrated(self):
        clf = ExpressionClassifier(default_baseline=0.2)
        result = clf.evaluate(0.25)
        assert result.baseline == pytest.approx(0.2)
        assert result.is_smiling is True

        clf.set_baseline(0.3)
        result = clf.evaluate(0.25)
        assert result.baseline == pytest.approx(0.3)
        assert result.is_smiling is False

    def test_result_fields(self):
        clf = ExpressionClassifier(threshold=1.1)
        clf.set_baseline(1.0)
        result = clf.evaluate(1.15)
        assert result.to_dict() == {"width": 1.15, "baseline": 1.0, "is_smiling": True}
