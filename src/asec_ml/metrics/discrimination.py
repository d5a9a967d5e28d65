"""
Discrimination metrics for binary classification models.

AUROC measures the probability that a randomly chosen employed respondent
receives a higher predicted score than a randomly chosen unemployed one,
independent of the decision threshold.

References:
    - Hanley & McNeil (1982). The meaning and use of the area under a ROC curve.
"""

import warnings

import numpy as np
from sklearn.metrics import roc_auc_score


def has_both_classes(y_true: np.ndarray) -> bool:
    """True when y_true holds both 0 and 1."""
    return len(np.unique(np.asarray(y_true))) >= 2


def _validate_binary_labels(y_true: np.ndarray, metric_name: str) -> bool:
    """
    Validate that y_true contains both positive and negative classes.

    Warns:
        UserWarning if only one class is present
    """
    if not has_both_classes(y_true):
        warnings.warn(
            f"{metric_name} requires both classes (0 and 1) in y_true, "
            f"but only found {np.unique(y_true).tolist()}. Returning NaN.",
            UserWarning,
            stacklevel=3,
        )
        return False
    return True


def auroc(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Compute Area Under the ROC Curve (AUROC).

    Args:
        y_true: True binary labels (0/1), shape (n_samples,)
        y_pred: Predicted probabilities for positive class, shape (n_samples,)

    Returns:
        AUROC score in [0.0, 1.0], or NaN if only one class present

    Warns:
        UserWarning if only one class is present

    Examples:
        >>> y_true = np.array([0, 0, 1, 1])
        >>> y_pred = np.array([0.1, 0.4, 0.35, 0.8])
        >>> auroc(y_true, y_pred)
        0.75
    """
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)
    if not _validate_binary_labels(y_true, "AUROC"):
        return np.nan
    return float(roc_auc_score(y_true, y_pred))
