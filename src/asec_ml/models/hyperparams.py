"""
Hyperparameter grids for each model family.

Grids are explicit, ordered lists of points. Order matters: when two points
tie on mean cross-validated score, the earlier one wins.
"""

from typing import Any

from sklearn.model_selection import ParameterGrid

from asec_ml.config.schema import PipelineConfig
from asec_ml.exceptions import ConfigurationError


def _get_logistic_params(config: PipelineConfig) -> dict[str, list]:
    return {
        "C": [float(c) for c in config.logistic.C_grid],
        "penalty": list(config.logistic.penalty),
    }


def _get_forest_params(config: PipelineConfig) -> dict[str, list]:
    return {"min_samples_leaf": [int(v) for v in config.forest.min_samples_leaf_grid]}


def build_param_grid(family: str, config: PipelineConfig) -> list[dict[str, Any]]:
    """
    Enumerate the grid for a model family.

    Args:
        family: 'logistic_pca' or 'random_forest'
        config: Pipeline configuration

    Returns:
        List of parameter dicts in a fixed order. For the logistic family the
        grid is C x penalty with C varying slowest.

    Raises:
        ConfigurationError: Unknown family or empty grid
    """
    if family == "logistic_pca":
        space = _get_logistic_params(config)
        # ParameterGrid iterates keys in sorted order; fix the order explicitly
        points = [
            {"C": c, "penalty": penalty} for c in space["C"] for penalty in space["penalty"]
        ]
    elif family == "random_forest":
        space = _get_forest_params(config)
        # ParameterGrid rejects empty value lists with its own ValueError
        points = list(ParameterGrid(space)) if all(space.values()) else []
    else:
        raise ConfigurationError(f"Unknown model family: {family}")

    if not points:
        raise ConfigurationError(f"Hyperparameter grid for {family} is empty")
    return points


def format_params(params: dict[str, Any]) -> str:
    """Compact 'k=v, k=v' rendering for logs and result tables."""
    return ", ".join(f"{k}={v}" for k, v in params.items())
