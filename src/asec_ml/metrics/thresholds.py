"""
Threshold-dependent classification metrics.

The positive class is ``employed == 1``; specificity is therefore the share of
unemployed respondents correctly predicted as unemployed.
"""

from typing import Any, Dict

import numpy as np
from sklearn.metrics import confusion_matrix


def binary_metrics_at_threshold(
    y_true: np.ndarray, p: np.ndarray, thr: float = 0.5
) -> Dict[str, Any]:
    """Compute classification metrics at a specific threshold.

    Args:
        y_true: True binary labels (0/1)
        p: Predicted probabilities [0, 1]
        thr: Classification threshold (predictions >= thr -> positive)

    Returns:
        Dictionary containing:
        - threshold: Applied threshold
        - accuracy: (TP + TN) / n
        - sensitivity: TP / (TP + FN)
        - specificity: TN / (TN + FP)
        - tp, fp, tn, fn: Confusion matrix counts

    Notes:
        - Sensitivity / specificity are NaN when the corresponding class is absent
    """
    y_true = np.asarray(y_true).astype(int)
    p = np.asarray(p).astype(float)
    y_hat = (p >= thr).astype(int)
    tn, fp, fn, tp = confusion_matrix(y_true, y_hat, labels=[0, 1]).ravel()
    n = tn + fp + fn + tp
    acc = (tp + tn) / n if n > 0 else np.nan
    sens = (tp / (tp + fn)) if (tp + fn) > 0 else np.nan
    spec = (tn / (tn + fp)) if (tn + fp) > 0 else np.nan
    return {
        "threshold": float(thr),
        "accuracy": float(acc),
        "sensitivity": float(sens),
        "specificity": float(spec),
        "tp": int(tp),
        "fp": int(fp),
        "tn": int(tn),
        "fn": int(fn),
    }


def majority_baseline_accuracy(y_true: np.ndarray) -> float:
    """Accuracy of always predicting the most frequent class."""
    y_true = np.asarray(y_true).astype(int)
    if y_true.size == 0:
        return float("nan")
    return float(max(y_true.mean(), 1.0 - y_true.mean()))
