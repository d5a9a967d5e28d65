"""
Tests for model evaluation, transfer datasets and report writing.
"""

import json

import joblib
import numpy as np
import pandas as pd
import pytest
from conftest import make_employment_data, make_mock_config

from asec_ml.data.splits import make_folds
from asec_ml.evaluation import (
    OutputDirectories,
    ResultsWriter,
    evaluate,
    evaluate_many,
    evaluate_records,
    reports_to_frame,
)
from asec_ml.exceptions import SchemaMismatchError
from asec_ml.models.artifact import load_model_artifact, save_model_artifact
from asec_ml.models.registry import get_model_family
from asec_ml.models.training import train_model


@pytest.fixture(scope="module")
def trained():
    X, y = make_employment_data(n=400, seed=3)
    family = get_model_family("random_forest", make_mock_config(forest={"n_estimators": 20}))
    model = train_model(family, X, y, make_folds(y, k=3, seed=0), grid=[{"min_samples_leaf": 5}])
    return model, X, y


def _records(X, y):
    return X.assign(employed=y.astype(float), year=2019)


# ============================================================================
# evaluate
# ============================================================================


class TestEvaluate:
    """Metrics of a trained model on one dataset."""

    def test_report_fields(self, trained):
        model, X, y = trained
        report = evaluate(model, X, y, dataset="train")
        assert report.dataset == "train"
        assert report.family == "random_forest"
        assert report.n == 400
        assert report.n_positive == int(y.sum())
        assert sum(report.confusion_matrix.values()) == 400
        assert 0.0 <= report.accuracy <= 1.0
        assert report.roc_auc > 0.5
        assert report.baseline_accuracy == pytest.approx(0.6)

    def test_deterministic(self, trained):
        model, X, y = trained
        assert evaluate(model, X, y).to_dict() == evaluate(model, X, y).to_dict()

    def test_extra_columns_ignored(self, trained):
        model, X, y = trained
        a = evaluate(model, X, y)
        b = evaluate(model, X.assign(year=2020, extra=1.0), y)
        assert a.to_dict() == b.to_dict()

    def test_threshold(self, trained):
        model, X, y = trained
        low = evaluate(model, X, y, threshold=0.01)
        high = evaluate(model, X, y, threshold=0.99)
        predicted_pos_low = low.confusion_matrix["tp"] + low.confusion_matrix["fp"]
        predicted_pos_high = high.confusion_matrix["tp"] + high.confusion_matrix["fp"]
        assert predicted_pos_low >= predicted_pos_high
        assert low.roc_auc == high.roc_auc

    def test_missing_feature(self, trained):
        model, X, y = trained
        with pytest.raises(SchemaMismatchError) as exc_info:
            evaluate(model, X.drop(columns=["inctot"]), y)
        assert exc_info.value.missing == ["inctot"]

    def test_empty(self, trained):
        model, X, y = trained
        with pytest.raises(ValueError, match="empty"):
            evaluate(model, X.iloc[:0], y[:0])

    def test_single_class(self, trained):
        model, X, y = trained
        pos = y == 1
        report = evaluate(model, X[pos], y[pos], dataset="employed_only")
        assert np.isnan(report.roc_auc)
        assert np.isnan(report.specificity)
        assert "ROC-AUC undefined" in report.warnings[0]

    def test_to_row(self, trained):
        model, X, y = trained
        row = evaluate(model, X, y).to_row()
        assert {"tn", "fp", "fn", "tp"} <= set(row)
        assert "confusion_matrix" not in row


class TestEvaluateRecords:
    def test_unlabeled_skipped(self, trained):
        model, X, y = trained
        df = _records(X, y)
        df.loc[:9, "employed"] = np.nan
        report = evaluate_records(model, df, dataset="year_2019")
        assert report.n == 390

    def test_missing_feature(self, trained):
        model, X, y = trained
        with pytest.raises(SchemaMismatchError):
            evaluate_records(model, _records(X, y).drop(columns=["female"]))


class TestEvaluateMany:
    """Failures are isolated per dataset."""

    def test_failure_isolated(self, trained):
        model, X, y = trained
        datasets = {
            "year_2020": _records(X, y),
            "broken": _records(X, y).drop(columns=["educ"]),
            "unlabeled": _records(X, y).assign(employed=np.nan),
        }
        reports, failures = evaluate_many(model, datasets)
        assert list(reports) == ["year_2020"]
        assert set(failures) == {"broken", "unlabeled"}
        assert failures["broken"].startswith("SchemaMismatchError")

    def test_frame(self, trained):
        model, X, y = trained
        reports, _ = evaluate_many(model, {"a": _records(X, y), "b": _records(X, y)})
        frame = reports_to_frame(reports)
        assert frame["dataset"].tolist() == ["a", "b"]


# ============================================================================
# Artifacts and report files
# ============================================================================


class TestModelArtifact:
    def test_round_trip(self, trained, tmp_path):
        model, X, y = trained
        path = save_model_artifact(model, tmp_path)
        assert path.name == "random_forest__final_model.joblib"
        loaded = load_model_artifact(path)
        np.testing.assert_allclose(loaded.predict_proba(X), model.predict_proba(X))
        assert loaded.hyperparameters == model.hyperparameters

    def test_sidecar(self, trained, tmp_path):
        model, _, _ = trained
        save_model_artifact(model, tmp_path)
        with open(tmp_path / "random_forest__final_model.json") as f:
            sidecar = json.load(f)
        assert sidecar["hyperparameters"] == {"min_samples_leaf": 5}
        assert sidecar["feature_columns"] == ["age", "inctot", "female", "educ"]
        assert "sklearn" in sidecar["versions"]

    def test_version_mismatch_warns(self, trained, tmp_path):
        model, _, _ = trained
        path = save_model_artifact(model, tmp_path)
        bundle = joblib.load(path)
        bundle["versions"]["sklearn"] = "0.0.1"
        joblib.dump(bundle, path)
        with pytest.warns(UserWarning, match="version mismatch"):
            load_model_artifact(path)

    def test_not_a_bundle(self, tmp_path):
        path = tmp_path / "other.joblib"
        joblib.dump({"something": 1}, path)
        with pytest.raises(TypeError, match="does not contain"):
            load_model_artifact(path)


class TestResultsWriter:
    """Output layout and written files."""

    def test_layout(self, tmp_path):
        dirs = OutputDirectories.create(tmp_path / "run")
        for name in ("core", "cv", "models", "reports", "splits"):
            assert (tmp_path / "run" / name).is_dir()
        assert dirs.get_path("cv", "x.csv").endswith("x.csv")
        with pytest.raises(ValueError):
            dirs.get_path("plots", "x.png")

    def test_writes(self, trained, tmp_path):
        model, X, y = trained
        writer = ResultsWriter(OutputDirectories.create(tmp_path))
        writer.save_cv_results(model)
        writer.save_model(model)
        reports, failures = evaluate_many(
            model, {"test": _records(X, y), "broken": _records(X, y).drop(columns=["age"])}
        )
        csv_path = writer.save_reports(reports, "random_forest__transfer", failures)
        writer.save_run_settings({"winner": "random_forest"})

        cv = pd.read_csv(tmp_path / "cv" / "random_forest__cv_results.csv")
        assert len(cv) == 3 + 1
        assert pd.read_csv(csv_path)["dataset"].tolist() == ["test"]
        assert (tmp_path / "reports" / "random_forest__test.json").exists()
        with open(tmp_path / "reports" / "random_forest__transfer.json") as f:
            index = json.load(f)
        assert "broken" in index["failures"]
        assert (tmp_path / "models" / "random_forest__final_model.joblib").exists()
        assert (tmp_path / "core" / "run_settings.json").exists()

    def test_empty_reports(self, tmp_path):
        writer = ResultsWriter(OutputDirectories.create(tmp_path))
        path = writer.save_reports({}, "none", {"a": "ValueError: empty"})
        assert list(pd.read_csv(path).columns) == ["dataset", "family"]
