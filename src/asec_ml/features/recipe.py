"""
Fold-scoped preprocessing recipes with an explicit fit/apply interface.

A ``Recipe`` is an ordered tuple of step specifications. ``fit_recipe``
computes every step parameter from the rows it is given, fitting each step on
the output of the previous one. ``apply_recipe`` replays the fitted
parameters on any compatible rows without recomputing anything and without
resampling. Cross-validation fits one recipe per fold on that fold's training
rows and applies it to the fold's validation rows.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from asec_ml.exceptions import SchemaMismatchError
from asec_ml.features.steps import (
    Center,
    CollapseRareLevels,
    Downsample,
    DropNearZeroVariance,
    Encode,
    FittedStep,
    ImputeMedian,
    ReduceDimensions,
    Scale,
    describe_step,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recipe:
    """Ordered, immutable list of preprocessing step specifications."""

    steps: tuple[Any, ...]

    def describe(self) -> list[dict[str, Any]]:
        return [describe_step(step) for step in self.steps]

    def __repr__(self) -> str:
        return "Recipe(" + " -> ".join(step.name for step in self.steps) + ")"


@dataclass(frozen=True)
class FittedRecipe:
    """Fitted step parameters plus the input/output feature schema."""

    steps: tuple[FittedStep, ...]
    feature_names_in: tuple[str, ...]
    feature_names_out: tuple[str, ...]

    def apply(self, X: pd.DataFrame) -> pd.DataFrame:
        return apply_recipe(self, X)

    def step(self, name: str) -> FittedStep:
        """First fitted step with the given name."""
        for fitted in self.steps:
            if fitted.name == name:
                return fitted
        raise KeyError(f"Recipe has no fitted step '{name}'")


def _fit_steps(
    recipe: Recipe,
    X: pd.DataFrame,
    y: np.ndarray | None,
    random_state: int | None,
) -> tuple[FittedRecipe, pd.DataFrame, np.ndarray | None]:
    feature_names_in = tuple(X.columns)
    fitted_steps = []
    Xt, yt = X, None if y is None else np.asarray(y)
    for step in recipe.steps:
        fitted = step.fit(Xt, yt, random_state)
        Xt, yt = fitted.transform_training(Xt, yt)
        fitted_steps.append(fitted)

    fitted_recipe = FittedRecipe(
        steps=tuple(fitted_steps),
        feature_names_in=feature_names_in,
        feature_names_out=tuple(Xt.columns),
    )
    return fitted_recipe, Xt, yt


def fit_recipe(
    recipe: Recipe,
    X: pd.DataFrame,
    y: np.ndarray | None = None,
    random_state: int | None = None,
) -> FittedRecipe:
    """
    Fit every step of ``recipe`` on ``X`` (and ``y`` for class balancing) only.

    Args:
        recipe: Recipe specification
        X: Training rows
        y: Training labels (needed by Downsample)
        random_state: Seed for stochastic steps

    Returns:
        FittedRecipe
    """
    fitted, _, _ = _fit_steps(recipe, X, y, random_state)
    return fitted


def fit_transform_recipe(
    recipe: Recipe,
    X: pd.DataFrame,
    y: np.ndarray | None = None,
    random_state: int | None = None,
) -> tuple[FittedRecipe, pd.DataFrame, np.ndarray | None]:
    """
    Fit ``recipe`` and return the transformed training rows.

    Training-only steps (downsampling) act here, so the returned rows and
    labels may be a subset of the input.

    Returns:
        (fitted_recipe, X_train_transformed, y_train_transformed)
    """
    return _fit_steps(recipe, X, y, random_state)


def apply_recipe(fitted: FittedRecipe, X: pd.DataFrame) -> pd.DataFrame:
    """
    Apply fitted parameters to any rows sharing the training feature schema.

    Raises:
        SchemaMismatchError: If an input feature seen at fit time is absent
    """
    missing = [c for c in fitted.feature_names_in if c not in X.columns]
    if missing:
        raise SchemaMismatchError(missing)
    Xt = X[list(fitted.feature_names_in)]
    for step in fitted.steps:
        Xt = step.transform(Xt)
    return Xt


# ============================================================================
# Recipe templates
# ============================================================================


def weighted_pca_recipe(
    manifest: Mapping[str, int],
    component_count: int = 10,
    nzv_freq_cut: float = 95 / 5,
    nzv_unique_cut: float = 10.0,
    downsample: bool = True,
    downsample_ratio: float = 1.0,
) -> Recipe:
    """
    Variance-weighted indicators reduced to ``component_count`` components.

    Only non-indicator (numeric) columns are scaled so the 1/sqrt(n) weights
    of the indicator blocks survive into the component analysis.
    """
    steps: list[Any] = []
    if downsample:
        steps.append(Downsample(ratio=downsample_ratio))
    steps += [
        Encode(manifest=dict(manifest), mode="weighted"),
        ImputeMedian(),
        DropNearZeroVariance(freq_cut=nzv_freq_cut, unique_cut=nzv_unique_cut),
        Center(columns="all"),
        Scale(columns="non_indicator"),
        ReduceDimensions(n_components=component_count),
    ]
    return Recipe(steps=tuple(steps))


def plain_tree_recipe(
    manifest: Mapping[str, int],
    rare_level_threshold: float = 0.05,
    downsample: bool = True,
    downsample_ratio: float = 1.0,
) -> Recipe:
    """Rare levels pooled, plain 0/1 indicators, median-imputed; no scaling or reduction."""
    steps: list[Any] = []
    if downsample:
        steps.append(Downsample(ratio=downsample_ratio))
    steps += [
        CollapseRareLevels(threshold=rare_level_threshold),
        Encode(manifest=dict(manifest), mode="plain"),
        ImputeMedian(),
    ]
    return Recipe(steps=tuple(steps))
