"""
Trained model artifact.

A ``TrainedModel`` bundles the fitted recipe, the fitted estimator and the
selected hyperparameters. It is created once by ``train_model`` from a single
training partition and is never mutated afterwards; retraining produces a new
artifact. Artifacts are saved as joblib bundles with library-version metadata
and a JSON sidecar for inspection without unpickling.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from asec_ml.features.recipe import FittedRecipe, apply_recipe
from asec_ml.utils.serialization import library_versions, load_joblib, save_joblib, save_json

logger = logging.getLogger(__name__)

ARTIFACT_FILENAME = "{family}__final_model.joblib"
SIDECAR_FILENAME = "{family}__final_model.json"


@dataclass(frozen=True, eq=False)
class TrainedModel:
    """Immutable (fitted recipe, fitted estimator, hyperparameters) bundle."""

    family: str
    hyperparameters: dict[str, Any]
    recipe: FittedRecipe
    estimator: Any
    feature_columns: tuple[str, ...]
    cv_results: pd.DataFrame = field(default_factory=pd.DataFrame)
    cv_score: float = float("nan")
    warnings: tuple[str, ...] = ()
    seed: int | None = None
    manifest_version: str | None = None
    age_range: tuple[int, int] | None = None

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """Apply the fitted recipe (raises SchemaMismatchError on missing features)."""
        return apply_recipe(self.recipe, X)

    def predict_proba(self, X: pd.DataFrame) -> np.ndarray:
        """Predicted probability of the positive (employed) class."""
        Xt = self.transform(X)
        return np.asarray(self.estimator.predict_proba(Xt)[:, 1], dtype=float)

    def summary(self) -> dict[str, Any]:
        return {
            "family": self.family,
            "hyperparameters": dict(self.hyperparameters),
            "cv_score": self.cv_score,
            "seed": self.seed,
            "manifest_version": self.manifest_version,
            "age_range": list(self.age_range) if self.age_range else None,
            "n_features_in": len(self.feature_columns),
            "feature_columns": list(self.feature_columns),
            "recipe_features_out": list(self.recipe.feature_names_out),
            "recipe_steps": [step.name for step in self.recipe.steps],
            "warnings": list(self.warnings),
        }


def save_model_artifact(model: TrainedModel, outdir: str | Path) -> Path:
    """
    Save a trained model as a joblib bundle plus a JSON sidecar.

    Args:
        model: Trained model
        outdir: Destination directory

    Returns:
        Path to the joblib bundle
    """
    outdir = Path(outdir)
    bundle = {
        "model": model,
        "family": model.family,
        "hyperparameters": dict(model.hyperparameters),
        "feature_columns": list(model.feature_columns),
        "versions": library_versions(),
    }
    path = outdir / ARTIFACT_FILENAME.format(family=model.family)
    save_joblib(bundle, path)

    sidecar = {**model.summary(), "versions": bundle["versions"]}
    save_json(sidecar, outdir / SIDECAR_FILENAME.format(family=model.family))
    logger.info("Saved %s model artifact: %s", model.family, path)
    return path


def load_model_artifact(path: str | Path, check_versions: bool = True) -> TrainedModel:
    """
    Load a trained model saved by ``save_model_artifact``.

    Warns:
        UserWarning if library versions differ from the saving environment

    Raises:
        TypeError: If the file does not hold a model bundle
    """
    bundle = load_joblib(path, check_versions=check_versions)
    if isinstance(bundle, TrainedModel):
        return bundle
    if not isinstance(bundle, dict) or not isinstance(bundle.get("model"), TrainedModel):
        raise TypeError(f"{path} does not contain a trained model bundle")
    return bundle["model"]
