"""
Tests for train/test splitting, K-fold construction and split bookkeeping.
"""

import numpy as np
import pandas as pd
import pytest

from asec_ml.data.splits import (
    compute_split_id,
    downsample_majority,
    make_folds,
    split_indices,
    split_train_test,
    summarize_split,
    validate_partition,
)
from asec_ml.exceptions import ConfigurationError

# ============================================================================
# Train/Test Split Tests
# ============================================================================


class TestSplitIndices:
    """Index-level train/test split."""

    def setup_method(self):
        self.y = np.array([1] * 60 + [0] * 40)

    def test_sizes(self):
        train, test = split_indices(self.y, 0.8, seed=0)
        assert len(train) == 80
        assert len(test) == 20

    def test_disjoint_cover(self):
        train, test = split_indices(self.y, 0.8, seed=0)
        ok, msg = validate_partition([train, test], len(self.y))
        assert ok, msg

    def test_deterministic(self):
        a = split_indices(self.y, 0.7, seed=3)
        b = split_indices(self.y, 0.7, seed=3)
        np.testing.assert_array_equal(a[0], b[0])
        np.testing.assert_array_equal(a[1], b[1])

    def test_seed_changes_split(self):
        a, _ = split_indices(self.y, 0.7, seed=1)
        b, _ = split_indices(self.y, 0.7, seed=2)
        assert not np.array_equal(a, b)

    def test_stratified_prevalence(self):
        train, test = split_indices(self.y, 0.8, seed=0)
        assert self.y[test].mean() == pytest.approx(0.6)

    def test_sorted(self):
        train, test = split_indices(self.y, 0.8, seed=0)
        assert np.all(np.diff(train) > 0)
        assert np.all(np.diff(test) > 0)

    def test_count_only(self):
        train, test = split_indices(10, 0.5, seed=0)
        assert len(train) == 5 and len(test) == 5

    @pytest.mark.parametrize("fraction", [0.0, 1.0, -0.2, 1.5])
    def test_invalid_fraction(self, fraction):
        with pytest.raises(ConfigurationError, match="train_fraction"):
            split_indices(self.y, fraction, seed=0)

    def test_single_class_falls_back(self):
        train, test = split_indices(np.ones(10), 0.8, seed=0)
        assert len(train) + len(test) == 10


class TestSplitTrainTest:
    def test_frames(self):
        df = pd.DataFrame({"employed": [1] * 30 + [0] * 20, "x": range(50)})
        train, test = split_train_test(df, 0.8, seed=0)
        assert len(train) == 40 and len(test) == 10
        assert set(train["x"]).isdisjoint(test["x"])
        assert train.index.tolist() == list(range(40))


# ============================================================================
# K-Fold Tests
# ============================================================================


class TestMakeFolds:
    """K-fold partitions."""

    def setup_method(self):
        self.y = np.array([1] * 60 + [0] * 40)

    def test_count(self):
        folds = make_folds(self.y, k=5, seed=0)
        assert len(folds) == 5
        assert [f.index for f in folds] == [0, 1, 2, 3, 4]

    def test_validation_parts_are_disjoint_cover(self):
        folds = make_folds(self.y, k=5, seed=0)
        ok, msg = validate_partition([f.val_idx for f in folds], len(self.y))
        assert ok, msg

    def test_train_and_val_complementary(self):
        for fold in make_folds(self.y, k=4, seed=0):
            ok, msg = validate_partition([fold.train_idx, fold.val_idx], len(self.y))
            assert ok, msg

    def test_stratified(self):
        for fold in make_folds(self.y, k=5, seed=0):
            assert self.y[fold.val_idx].mean() == pytest.approx(0.6)

    def test_deterministic(self):
        a = make_folds(self.y, k=5, seed=11)
        b = make_folds(self.y, k=5, seed=11)
        for fa, fb in zip(a, b):
            np.testing.assert_array_equal(fa.val_idx, fb.val_idx)

    def test_small_class_falls_back_to_plain_kfold(self):
        y = np.array([1] * 18 + [0] * 2)
        folds = make_folds(y, k=5, seed=0)
        ok, _ = validate_partition([f.val_idx for f in folds], len(y))
        assert ok

    def test_k_too_small(self):
        with pytest.raises(ConfigurationError, match=">= 2"):
            make_folds(self.y, k=1, seed=0)

    def test_k_exceeds_n(self):
        with pytest.raises(ConfigurationError, match="exceeds"):
            make_folds(np.array([0, 1, 0]), k=5, seed=0)


# ============================================================================
# Bookkeeping Tests
# ============================================================================


class TestValidatePartition:
    def test_overlap(self):
        ok, msg = validate_partition([np.array([0, 1]), np.array([1, 2])], 3)
        assert not ok and "more than one" in msg

    def test_gap(self):
        ok, msg = validate_partition([np.array([0]), np.array([2])], 3)
        assert not ok and "not assigned" in msg

    def test_out_of_range(self):
        ok, msg = validate_partition([np.array([0, 5])], 3)
        assert not ok and "outside" in msg


class TestComputeSplitId:
    def test_order_independent(self):
        assert compute_split_id(np.array([3, 1, 2])) == compute_split_id(np.array([1, 2, 3]))

    def test_length(self):
        assert len(compute_split_id(np.arange(10))) == 12

    def test_differs(self):
        assert compute_split_id(np.arange(10)) != compute_split_id(np.arange(11))


class TestSummarizeSplit:
    def test_summary(self):
        summary = summarize_split(
            np.arange(8), np.arange(8, 10), np.array([1, 1, 1, 1, 0, 0, 0, 0]), np.array([1, 0])
        )
        assert summary["n_train"] == 8
        assert summary["n_test_pos"] == 1
        assert summary["prevalence_train"] == pytest.approx(0.5)
        assert summary["split_id_test"] == compute_split_id(np.arange(8, 10))


class TestDownsampleMajority:
    def test_balanced(self):
        y = np.array([1] * 60 + [0] * 40)
        kept = downsample_majority(y, 1.0, np.random.RandomState(0))
        assert (y[kept] == 1).sum() == 40
        assert (y[kept] == 0).sum() == 40

    def test_ratio(self):
        y = np.array([1] * 60 + [0] * 20)
        kept = downsample_majority(y, 2.0, np.random.RandomState(0))
        assert (y[kept] == 1).sum() == 40

    def test_seeded(self):
        y = np.array([1] * 60 + [0] * 40)
        a = downsample_majority(y, 1.0, np.random.RandomState(5))
        b = downsample_majority(y, 1.0, np.random.RandomState(5))
        np.testing.assert_array_equal(a, b)

    def test_single_class_kept(self):
        y = np.ones(5)
        kept = downsample_majority(y, 1.0, np.random.RandomState(0))
        np.testing.assert_array_equal(kept, np.arange(5))
