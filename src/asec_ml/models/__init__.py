"""Model families, cross-validated grid search and trained artifacts."""

from asec_ml.models.artifact import TrainedModel, load_model_artifact, save_model_artifact
from asec_ml.models.hyperparams import build_param_grid, format_params
from asec_ml.models.registry import (
    ModelFamily,
    build_logistic_regression,
    build_random_forest,
    get_model_family,
)
from asec_ml.models.training import (
    GridSearchResult,
    TaskResult,
    cross_validated_search,
    fit_final_model,
    select_best_point,
    train_model,
)

__all__ = [
    "TrainedModel",
    "save_model_artifact",
    "load_model_artifact",
    "build_param_grid",
    "format_params",
    "ModelFamily",
    "build_logistic_regression",
    "build_random_forest",
    "get_model_family",
    "GridSearchResult",
    "TaskResult",
    "cross_validated_search",
    "fit_final_model",
    "select_best_point",
    "train_model",
]
