"""
Evaluation of trained models on held-out or external record sets.

The dataset need not be the original test split: any labeled record set that
carries the model's input features (a later survey year, a demographic
subset) can be evaluated. Evaluation is read-only. Fitted parameters are
replayed and training-only steps (downsampling) never run, so evaluating the
same inputs twice yields identical metrics.
"""

import logging
import warnings
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from asec_ml.data.columns import split_features_target
from asec_ml.data.filters import labeled_records
from asec_ml.data.schema import TARGET_COL
from asec_ml.exceptions import SchemaMismatchError
from asec_ml.metrics.discrimination import auroc, has_both_classes
from asec_ml.metrics.thresholds import binary_metrics_at_threshold, majority_baseline_accuracy
from asec_ml.models.artifact import TrainedModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluationReport:
    """Metrics of one model on one dataset."""

    dataset: str
    family: str
    n: int
    n_positive: int
    threshold: float
    confusion_matrix: dict[str, int]
    accuracy: float
    sensitivity: float
    specificity: float
    roc_auc: float
    baseline_accuracy: float
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["warnings"] = list(self.warnings)
        return out

    def to_row(self) -> dict[str, Any]:
        """Flat dict (confusion-matrix cells as columns) for CSV tables."""
        row = {k: v for k, v in self.to_dict().items() if k != "confusion_matrix"}
        row.update(self.confusion_matrix)
        row["warnings"] = "; ".join(self.warnings)
        return row


def evaluate(
    model: TrainedModel,
    X: pd.DataFrame,
    y: np.ndarray,
    threshold: float = 0.5,
    dataset: str = "test",
) -> EvaluationReport:
    """
    Evaluate ``model`` on features ``X`` and labels ``y``.

    Args:
        model: Trained model
        X: Features (must contain every column in ``model.feature_columns``)
        y: True labels (0/1)
        threshold: Probability cut-off for the employed class
        dataset: Label recorded on the report

    Returns:
        EvaluationReport

    Raises:
        SchemaMismatchError: If X lacks a feature the model expects
    """
    y = np.asarray(y).astype(int)
    missing = [c for c in model.feature_columns if c not in X.columns]
    if missing:
        raise SchemaMismatchError(missing)

    notes: list[str] = []
    if len(y) == 0:
        raise ValueError(f"Cannot evaluate on empty dataset '{dataset}'")

    p = model.predict_proba(X[list(model.feature_columns)])
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", UserWarning)
        roc_auc = auroc(y, p)
    if not has_both_classes(y):
        notes.append(f"{dataset}: single label class present; ROC-AUC undefined")

    m = binary_metrics_at_threshold(y, p, thr=threshold)
    report = EvaluationReport(
        dataset=dataset,
        family=model.family,
        n=int(len(y)),
        n_positive=int(y.sum()),
        threshold=float(threshold),
        confusion_matrix={"tn": m["tn"], "fp": m["fp"], "fn": m["fn"], "tp": m["tp"]},
        accuracy=m["accuracy"],
        sensitivity=m["sensitivity"],
        specificity=m["specificity"],
        roc_auc=roc_auc,
        baseline_accuracy=majority_baseline_accuracy(y),
        warnings=tuple(notes),
    )
    for note in notes:
        logger.warning(note)
    logger.info(
        "[eval] %s on %s (n=%d): ROC-AUC=%.4f acc=%.4f spec=%.4f",
        model.family,
        dataset,
        report.n,
        report.roc_auc,
        report.accuracy,
        report.specificity,
    )
    return report


def evaluate_records(
    model: TrainedModel,
    df: pd.DataFrame,
    threshold: float = 0.5,
    dataset: str = "records",
    target_col: str = TARGET_COL,
) -> EvaluationReport:
    """
    Evaluate on normalized, selected records (unlabeled records are skipped).

    Raises:
        SchemaMismatchError: If the records lack a feature the model expects
    """
    missing = [c for c in model.feature_columns if c not in df.columns]
    if missing:
        raise SchemaMismatchError(missing)
    labeled = labeled_records(df, target_col=target_col)
    X, y = split_features_target(labeled, list(model.feature_columns), target_col=target_col)
    return evaluate(model, X, y, threshold=threshold, dataset=dataset)


def evaluate_many(
    model: TrainedModel,
    datasets: Mapping[str, pd.DataFrame],
    threshold: float = 0.5,
) -> tuple[dict[str, EvaluationReport], dict[str, str]]:
    """
    Evaluate one model on several named record sets.

    A dataset that lacks model features (SchemaMismatchError) or holds no
    labeled rows is reported as failed without affecting the others.

    Returns:
        (reports by dataset name, error message by failed dataset name)
    """
    reports: dict[str, EvaluationReport] = {}
    failures: dict[str, str] = {}
    for name, df in datasets.items():
        try:
            reports[name] = evaluate_records(model, df, threshold=threshold, dataset=name)
        except (SchemaMismatchError, ValueError) as e:
            logger.error("[eval] %s on %s failed: %s", model.family, name, e)
            failures[name] = f"{type(e).__name__}: {e}"
    return reports, failures


def reports_to_frame(reports: Mapping[str, EvaluationReport]) -> pd.DataFrame:
    return pd.DataFrame([r.to_row() for r in reports.values()])
