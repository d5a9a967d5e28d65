"""Model evaluation and report writing."""

from asec_ml.evaluation.evaluate import (
    EvaluationReport,
    evaluate,
    evaluate_many,
    evaluate_records,
    reports_to_frame,
)
from asec_ml.evaluation.reports import OutputDirectories, ResultsWriter

__all__ = [
    "EvaluationReport",
    "evaluate",
    "evaluate_records",
    "evaluate_many",
    "reports_to_frame",
    "OutputDirectories",
    "ResultsWriter",
]
