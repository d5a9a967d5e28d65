"""Model families: estimator builders plus the recipe each family trains on.

This module provides:
- Estimator instantiation (LogisticRegression, RandomForestClassifier)
- ``ModelFamily``: recipe template + estimator factory + hyperparameter grid
- sklearn version compatibility handling

References:
- scikit-learn 1.8+ deprecates penalty= in LogisticRegression (use l1_ratio=)
"""

import logging
import re
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, List, Tuple

import sklearn
from sklearn.base import ClassifierMixin
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression

from asec_ml.config.schema import PipelineConfig
from asec_ml.exceptions import ConfigurationError
from asec_ml.features.recipe import Recipe, plain_tree_recipe, weighted_pca_recipe
from asec_ml.models.hyperparams import build_param_grid

logger = logging.getLogger(__name__)


# ----------------------------
# sklearn version compatibility
# ----------------------------
def _sklearn_version_tuple(ver: str) -> Tuple[int, int, int]:
    """Parse sklearn version string (robust to rc/dev suffixes)."""
    nums = re.findall(r"\d+", ver)
    nums = (nums + ["0", "0", "0"])[:3]
    return (int(nums[0]), int(nums[1]), int(nums[2]))


SKLEARN_VER = _sklearn_version_tuple(getattr(sklearn, "__version__", "0.0.0"))


# ----------------------------
# Estimator builders
# ----------------------------
def build_logistic_regression(
    C: float = 1.0,
    penalty: str = "l2",
    solver: str = "lbfgs",
    max_iter: int = 1000,
    random_state: int = 42,
) -> LogisticRegression:
    """Build Logistic Regression estimator (sklearn 1.8+ compatible).

    Args:
        C: Inverse regularization strength
        penalty: 'l1' or 'l2'
        solver: Optimization algorithm
        max_iter: Maximum iterations
        random_state: Random seed

    Returns:
        Configured LogisticRegression estimator
    """
    lr_common = {
        "solver": solver,
        "C": float(C),
        "max_iter": int(max_iter),
        "random_state": int(random_state),
    }

    # sklearn >=1.8 deprecates penalty=, uses l1_ratio
    if SKLEARN_VER >= (1, 8, 0):
        return LogisticRegression(l1_ratio=1.0 if penalty == "l1" else 0.0, **lr_common)
    return LogisticRegression(penalty=penalty, **lr_common)


def build_random_forest(
    min_samples_leaf: int = 1,
    n_estimators: int = 500,
    max_features: int | str = 5,
    random_state: int = 42,
    n_jobs: int = 1,
) -> RandomForestClassifier:
    """Build Random Forest classifier.

    Args:
        min_samples_leaf: Minimum samples per leaf
        n_estimators: Number of trees
        max_features: Features sampled per split
        random_state: Random seed
        n_jobs: Parallel jobs

    Returns:
        Configured RandomForestClassifier
    """
    return RandomForestClassifier(
        n_estimators=int(n_estimators),
        min_samples_leaf=int(min_samples_leaf),
        max_features=max_features,
        random_state=int(random_state),
        n_jobs=int(max(1, n_jobs)),
    )


def _make_logistic(
    params: Dict[str, Any],
    random_state: int,
    n_features: int,
    solver: str,
    max_iter: int,
) -> LogisticRegression:
    return build_logistic_regression(
        C=params["C"],
        penalty=params["penalty"],
        solver=solver,
        max_iter=max_iter,
        random_state=random_state,
    )


def _make_forest(
    params: Dict[str, Any],
    random_state: int,
    n_features: int,
    n_estimators: int,
    max_features: int,
) -> RandomForestClassifier:
    # Features per split cannot exceed the columns left after preprocessing
    return build_random_forest(
        min_samples_leaf=params["min_samples_leaf"],
        n_estimators=n_estimators,
        max_features=max(1, min(max_features, n_features)),
        random_state=random_state,
    )


# ----------------------------
# Model families
# ----------------------------
EstimatorFactory = Callable[[Dict[str, Any], int, int], ClassifierMixin]


@dataclass(frozen=True)
class ModelFamily:
    """A recipe template, an estimator factory and the grid searched over.

    ``make_estimator(params, random_state, n_features)`` returns an unfitted
    estimator for one grid point. Factories are ``functools.partial`` objects
    over module-level functions so a family can be shipped to worker processes.
    """

    name: str
    recipe: Recipe
    make_estimator: EstimatorFactory
    grid: List[Dict[str, Any]] = field(default_factory=list)

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "recipe": self.recipe.describe(),
            "grid_size": len(self.grid),
        }


def get_model_family(name: str, config: PipelineConfig) -> ModelFamily:
    """
    Assemble a model family from pipeline configuration.

    Args:
        name: 'logistic_pca' or 'random_forest'
        config: Pipeline configuration

    Returns:
        ModelFamily

    Raises:
        ConfigurationError: Unknown family name
    """
    rc = config.recipe
    counts = dict(config.manifest.counts)

    if name == "logistic_pca":
        recipe = weighted_pca_recipe(
            counts,
            component_count=rc.component_count,
            nzv_freq_cut=rc.nzv_freq_cut,
            nzv_unique_cut=rc.nzv_unique_cut,
            downsample=rc.downsample,
            downsample_ratio=rc.downsample_ratio,
        )
        factory = partial(
            _make_logistic,
            solver=config.logistic.solver,
            max_iter=config.logistic.max_iter,
        )
    elif name == "random_forest":
        recipe = plain_tree_recipe(
            counts,
            rare_level_threshold=rc.rare_level_threshold,
            downsample=rc.downsample,
            downsample_ratio=rc.downsample_ratio,
        )
        factory = partial(
            _make_forest,
            n_estimators=config.forest.n_estimators,
            max_features=config.forest.max_features,
        )
    else:
        raise ConfigurationError(f"Unknown model family: {name}")

    family = ModelFamily(
        name=name,
        recipe=recipe,
        make_estimator=factory,
        grid=build_param_grid(name, config),
    )
    logger.debug("Model family %s: %r, %d grid points", name, recipe, len(family.grid))
    return family
