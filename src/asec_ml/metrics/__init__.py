"""Performance metrics for employment classifiers."""

from asec_ml.metrics.discrimination import auroc, has_both_classes
from asec_ml.metrics.thresholds import binary_metrics_at_threshold, majority_baseline_accuracy

__all__ = [
    "auroc",
    "has_both_classes",
    "binary_metrics_at_threshold",
    "majority_baseline_accuracy",
]
