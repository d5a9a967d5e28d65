"""
Tests for discrimination and threshold metrics.
"""

import numpy as np
import pytest

from asec_ml.metrics import (
    auroc,
    binary_metrics_at_threshold,
    has_both_classes,
    majority_baseline_accuracy,
)


class TestAUROC:
    def test_known_value(self):
        y = np.array([0, 0, 1, 1])
        p = np.array([0.1, 0.4, 0.35, 0.8])
        assert auroc(y, p) == pytest.approx(0.75)

    def test_perfect(self):
        assert auroc(np.array([0, 1]), np.array([0.2, 0.9])) == 1.0

    def test_single_class_is_nan(self):
        with pytest.warns(UserWarning, match="requires both classes"):
            result = auroc(np.array([1, 1, 1]), np.array([0.2, 0.5, 0.9]))
        assert np.isnan(result)

    def test_has_both_classes(self):
        assert has_both_classes(np.array([0, 1, 1]))
        assert not has_both_classes(np.array([0, 0]))


class TestBinaryMetricsAtThreshold:
    """Confusion-matrix metrics with employed as the positive class."""

    def test_counts(self):
        y = np.array([1, 1, 1, 0, 0])
        p = np.array([0.9, 0.6, 0.2, 0.7, 0.1])
        m = binary_metrics_at_threshold(y, p, 0.5)
        assert (m["tp"], m["fn"], m["fp"], m["tn"]) == (2, 1, 1, 1)
        assert m["accuracy"] == pytest.approx(3 / 5)
        assert m["sensitivity"] == pytest.approx(2 / 3)
        assert m["specificity"] == pytest.approx(1 / 2)

    def test_threshold_inclusive(self):
        m = binary_metrics_at_threshold(np.array([1]), np.array([0.5]), 0.5)
        assert m["tp"] == 1

    def test_counts_sum_to_n(self):
        rng = np.random.RandomState(0)
        y = rng.randint(0, 2, 50)
        m = binary_metrics_at_threshold(y, rng.uniform(size=50), 0.3)
        assert m["tp"] + m["fp"] + m["tn"] + m["fn"] == 50

    def test_absent_class_gives_nan(self):
        m = binary_metrics_at_threshold(np.array([1, 1]), np.array([0.9, 0.1]))
        assert np.isnan(m["specificity"])
        assert m["sensitivity"] == pytest.approx(0.5)


class TestMajorityBaseline:
    def test_majority(self):
        assert majority_baseline_accuracy(np.array([1, 1, 1, 0])) == pytest.approx(0.75)
        assert majority_baseline_accuracy(np.array([0, 0, 1])) == pytest.approx(2 / 3)

    def test_empty(self):
        assert np.isnan(majority_baseline_accuracy(np.array([])))
