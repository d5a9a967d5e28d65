"""
Tests for cross-validated grid search and final model training.
"""

import numpy as np
import pandas as pd
import pytest
from conftest import make_employment_data, make_mock_config

from asec_ml.data.splits import Fold, make_folds, split_indices
from asec_ml.evaluation.evaluate import evaluate
from asec_ml.exceptions import ConfigurationError
from asec_ml.models.registry import get_model_family
from asec_ml.models.training import (
    cross_validated_search,
    fit_final_model,
    select_best_point,
    train_model,
)


class TestSelectBestPoint:
    """Mean-score ranking with grid-order tie breaking."""

    def test_max(self):
        assert select_best_point([0.6, 0.9, 0.7]) == 1

    def test_tie_goes_to_earliest(self):
        assert select_best_point([0.7, 0.8, 0.8]) == 1
        assert select_best_point([0.8, 0.8]) == 0

    def test_nan_skipped(self):
        assert select_best_point([np.nan, 0.5]) == 1

    def test_all_nan(self):
        assert select_best_point([np.nan, np.nan]) is None


class TestCrossValidatedSearch:
    """Grid search over folds of the training split."""

    def setup_method(self):
        self.X, self.y = make_employment_data(n=300, seed=1)
        self.family = get_model_family(
            "random_forest", make_mock_config(forest={"n_estimators": 10})
        )
        self.folds = make_folds(self.y, k=3, seed=0)

    def test_every_point_scored(self):
        result = cross_validated_search(self.family, None, self.X, self.y, self.folds)
        assert len(result.fold_results) == 4 * 3
        assert (result.summary["n_folds_scored"] == 3).all()
        assert result.best_params == self.family.grid[result.best_index]
        assert result.best_score == pytest.approx(result.summary["mean_score"].max())

    def test_results_table(self):
        result = cross_validated_search(self.family, None, self.X, self.y, self.folds)
        table = result.results_table()
        assert len(table) == 12 + 4
        assert (table["fold"] == "mean").sum() == 4
        assert "param_min_samples_leaf" in table.columns

    def test_explicit_grid(self):
        grid = [{"min_samples_leaf": 3}]
        result = cross_validated_search(self.family, grid, self.X, self.y, self.folds)
        assert result.best_index == 0
        assert result.best_params == {"min_samples_leaf": 3}

    def test_deterministic(self):
        a = cross_validated_search(self.family, None, self.X, self.y, self.folds, base_seed=5)
        b = cross_validated_search(self.family, None, self.X, self.y, self.folds, base_seed=5)
        pd.testing.assert_series_equal(a.summary["mean_score"], b.summary["mean_score"])

    def test_parallel_matches_serial(self):
        grid = self.family.grid[:2]
        serial = cross_validated_search(self.family, grid, self.X, self.y, self.folds, n_jobs=1)
        parallel = cross_validated_search(self.family, grid, self.X, self.y, self.folds, n_jobs=2)
        np.testing.assert_allclose(
            serial.summary["mean_score"].to_numpy(), parallel.summary["mean_score"].to_numpy()
        )

    def test_degenerate_fold_excluded(self):
        positives = np.flatnonzero(self.y == 1)[:5]
        rest = np.setdiff1d(np.arange(len(self.y)), positives)
        good = make_folds(self.y, k=2, seed=0)[0]
        folds = [Fold(0, rest, positives), Fold(1, good.train_idx, good.val_idx)]

        result = cross_validated_search(
            self.family, [{"min_samples_leaf": 5}], self.X, self.y, folds
        )
        failed = result.fold_results[result.fold_results["status"] == "failed"]
        assert failed["fold"].tolist() == [0]
        assert failed["error_type"].iloc[0] == "DegenerateFoldError"
        assert result.summary.loc[0, "n_folds_scored"] == 1
        assert result.summary.loc[0, "n_folds_failed"] == 1
        assert any("fold 0 excluded" in w for w in result.warnings)

    def test_all_folds_degenerate(self):
        y = np.ones(len(self.y), dtype=int)
        folds = make_folds(y, k=3, seed=0)
        with pytest.raises(ConfigurationError, match="No grid point"):
            cross_validated_search(self.family, None, self.X, y, folds)

    def test_empty_grid(self):
        with pytest.raises(ConfigurationError, match="empty"):
            cross_validated_search(self.family, [], self.X, self.y, self.folds)

    def test_no_folds(self):
        with pytest.raises(ConfigurationError, match="at least one fold"):
            cross_validated_search(self.family, None, self.X, self.y, [])


class TestFitFinalModel:
    def test_single_class_rejected(self):
        X, y = make_employment_data(n=50)
        family = get_model_family("random_forest", make_mock_config())
        with pytest.raises(ConfigurationError, match="single label class"):
            fit_final_model(family, {"min_samples_leaf": 1}, X, np.ones(50, dtype=int))

    def test_fits(self):
        X, y = make_employment_data(n=100)
        family = get_model_family("random_forest", make_mock_config())
        fitted, estimator = fit_final_model(family, {"min_samples_leaf": 5}, X, y, seed=0)
        assert estimator.predict_proba(fitted.apply(X)).shape == (100, 2)


class TestTrainModel:
    """End-to-end tuning and refit."""

    def test_forest_end_to_end(self):
        X, y = make_employment_data(n=1000, positive_fraction=0.6, seed=0)
        family = get_model_family("random_forest", make_mock_config())
        train_idx, test_idx = split_indices(y, 0.8, seed=0)
        assert len(train_idx) == 800 and len(test_idx) == 200

        X_train = X.iloc[train_idx].reset_index(drop=True)
        folds = make_folds(y[train_idx], k=10, seed=0)
        model = train_model(family, X_train, y[train_idx], folds, seed=0)

        assert model.family == "random_forest"
        assert model.hyperparameters in family.grid
        assert model.cv_score > 0.5
        assert len(model.cv_results) == 10 * 4 + 4

        report = evaluate(model, X.iloc[test_idx], y[test_idx])
        assert report.n == 200
        assert report.accuracy > 0.6
        assert report.accuracy > report.baseline_accuracy

    def test_logistic_end_to_end(self):
        X, y = make_employment_data(n=400, seed=2)
        family = get_model_family("logistic_pca", make_mock_config())
        folds = make_folds(y, k=3, seed=0)
        model = train_model(family, X, y, folds, seed=0, manifest_version="test")

        assert set(model.hyperparameters) == {"C", "penalty"}
        assert model.cv_score > 0.5
        assert model.recipe.feature_names_out == ("PC1", "PC2", "PC3")
        assert model.manifest_version == "test"
        assert model.predict_proba(X).shape == (400,)

    def test_single_class_training(self):
        X, _ = make_employment_data(n=100)
        y = np.ones(100, dtype=int)
        family = get_model_family("random_forest", make_mock_config())
        with pytest.raises(ConfigurationError):
            train_model(family, X, y, make_folds(y, k=3, seed=0))

    def test_feature_columns_recorded(self):
        X, y = make_employment_data(n=200)
        family = get_model_family("random_forest", make_mock_config())
        model = train_model(
            family, X, y, make_folds(y, k=3, seed=0), grid=[{"min_samples_leaf": 5}]
        )
        assert model.feature_columns == tuple(X.columns)
        assert model.summary()["recipe_steps"][0] == "downsample"

    def test_component_clipping_reaches_model_warnings(self):
        X, y = make_employment_data(n=200, seed=4)
        family = get_model_family("logistic_pca", make_mock_config(recipe={"component_count": 50}))
        model = train_model(
            family,
            X,
            y,
            make_folds(y, k=3, seed=0),
            grid=[{"C": 1.0, "penalty": "l2"}],
            n_jobs=2,
        )
        assert len(model.recipe.feature_names_out) < 50
        assert any("requested 50 components" in w for w in model.warnings)
        assert any("refit" in w and "requested 50 components" in w for w in model.warnings)
