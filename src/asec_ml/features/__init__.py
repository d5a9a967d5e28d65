"""Fold-scoped preprocessing recipes."""

from asec_ml.features.recipe import (
    FittedRecipe,
    Recipe,
    apply_recipe,
    fit_recipe,
    fit_transform_recipe,
    plain_tree_recipe,
    weighted_pca_recipe,
)
from asec_ml.features.steps import (
    Center,
    CollapseRareLevels,
    Downsample,
    DropNearZeroVariance,
    Encode,
    ImputeMedian,
    ReduceDimensions,
    Scale,
)

__all__ = [
    "Recipe",
    "FittedRecipe",
    "fit_recipe",
    "fit_transform_recipe",
    "apply_recipe",
    "weighted_pca_recipe",
    "plain_tree_recipe",
    "CollapseRareLevels",
    "Encode",
    "ImputeMedian",
    "DropNearZeroVariance",
    "Center",
    "Scale",
    "ReduceDimensions",
    "Downsample",
]
