"""
Cross-validated grid search and final model training.

Provides:
- One task per (grid point, fold): fit recipe + estimator on the fold's
  training rows, score ROC-AUC on its validation rows
- Parallel execution through joblib (loky backend) with per-task seeds
- Mean-score aggregation with first-in-grid-order tie breaking
- Final refit on the full training split, returning a frozen TrainedModel

Failure policy:
- A task whose training or validation rows hold a single label class raises
  DegenerateFoldError inside the worker. Estimator failures (ValueError,
  LinAlgError) are treated the same way. Either is returned as data, logged
  as a warning in the parent and excluded from aggregation.
- If no grid point has a single scored fold, ConfigurationError is raised.
"""

import logging
import time
import warnings
from dataclasses import dataclass, field
from typing import Any, Sequence

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from sklearn.metrics import roc_auc_score

from asec_ml.data.splits import Fold
from asec_ml.exceptions import ConfigurationError, DegenerateFoldError
from asec_ml.features.recipe import Recipe, apply_recipe, fit_transform_recipe
from asec_ml.metrics.discrimination import has_both_classes
from asec_ml.models.artifact import TrainedModel
from asec_ml.models.hyperparams import format_params
from asec_ml.models.registry import EstimatorFactory, ModelFamily
from asec_ml.utils.random import get_cv_seed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskResult:
    """Outcome of one (grid point, fold) task."""

    point: int
    fold: int
    seed: int
    score: float
    n_train: int
    n_fit: int
    n_val: int
    error_type: str | None = None
    error: str | None = None
    messages: tuple[str, ...] = ()
    elapsed_sec: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, eq=False)
class GridSearchResult:
    """Per-task scores, per-point summary and the selected grid point."""

    family: str
    grid: list[dict[str, Any]]
    best_index: int
    best_params: dict[str, Any]
    best_score: float
    fold_results: pd.DataFrame
    summary: pd.DataFrame
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def results_table(self) -> pd.DataFrame:
        """Per-fold rows followed by one summary row per grid point (fold='mean')."""
        folds = self.fold_results.copy()
        folds["fold"] = folds["fold"].astype(object)
        means = self.summary.rename(columns={"mean_score": "score"}).assign(fold="mean")
        return pd.concat([folds, means], ignore_index=True, sort=False)


# ============================================================================
# Single task
# ============================================================================


def _require_both_classes(y: np.ndarray, what: str, fold: int):
    if not has_both_classes(y):
        present = np.unique(y).tolist()
        raise DegenerateFoldError(
            f"{what} rows of fold {fold} hold a single label class {present}", fold=fold
        )


def _fit_and_score(
    recipe: Recipe,
    make_estimator: EstimatorFactory,
    params: dict[str, Any],
    X: pd.DataFrame,
    y: np.ndarray,
    fold: Fold,
    point: int,
    seed: int,
) -> TaskResult:
    """Fit recipe + estimator on one fold's training rows and score its validation rows."""
    t0 = time.perf_counter()
    y_train = y[fold.train_idx]
    y_val = y[fold.val_idx]
    n_fit = 0
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            _require_both_classes(y_train, "Training", fold.index)
            _require_both_classes(y_val, "Validation", fold.index)
            fitted, Xt, yt = fit_transform_recipe(
                recipe, X.iloc[fold.train_idx], y_train, random_state=seed
            )
            n_fit = len(yt)
            _require_both_classes(yt, "Preprocessed training", fold.index)
            estimator = make_estimator(params, seed, Xt.shape[1])
            estimator.fit(Xt, yt)
            p = estimator.predict_proba(apply_recipe(fitted, X.iloc[fold.val_idx]))[:, 1]
            score = float(roc_auc_score(y_val, p))
            error_type = error = None
        except (DegenerateFoldError, ValueError, np.linalg.LinAlgError) as e:
            score = float("nan")
            error_type, error = type(e).__name__, str(e)

    messages = tuple(dict.fromkeys(f"{w.category.__name__}: {w.message}" for w in caught))
    return TaskResult(
        point=point,
        fold=fold.index,
        seed=seed,
        score=score,
        n_train=len(fold.train_idx),
        n_fit=n_fit,
        n_val=len(fold.val_idx),
        error_type=error_type,
        error=error,
        messages=messages,
        elapsed_sec=time.perf_counter() - t0,
    )


# ============================================================================
# Grid search
# ============================================================================


def _aggregate(
    family: str, grid: list[dict[str, Any]], results: list[TaskResult]
) -> tuple[pd.DataFrame, pd.DataFrame]:
    rows = []
    for r in results:
        rows.append(
            {
                "family": family,
                "point": r.point,
                "fold": r.fold,
                "params": format_params(grid[r.point]),
                **{f"param_{k}": v for k, v in grid[r.point].items()},
                "score": r.score,
                "status": "ok" if r.ok else "failed",
                "error_type": r.error_type,
                "error": r.error,
                "seed": r.seed,
                "n_train": r.n_train,
                "n_fit": r.n_fit,
                "n_val": r.n_val,
                "elapsed_sec": r.elapsed_sec,
            }
        )
    fold_results = pd.DataFrame(rows)

    summary_rows = []
    for point, params in enumerate(grid):
        scores = np.array([r.score for r in results if r.point == point and r.ok], dtype=float)
        n_failed = sum(1 for r in results if r.point == point and not r.ok)
        summary_rows.append(
            {
                "family": family,
                "point": point,
                "params": format_params(params),
                **{f"param_{k}": v for k, v in params.items()},
                "mean_score": float(scores.mean()) if scores.size else float("nan"),
                "std_score": float(scores.std(ddof=1)) if scores.size > 1 else float("nan"),
                "n_folds_scored": int(scores.size),
                "n_folds_failed": int(n_failed),
            }
        )
    return fold_results, pd.DataFrame(summary_rows)


def select_best_point(mean_scores: Sequence[float]) -> int | None:
    """Index of the maximal mean score; ties go to the earliest point, NaN never wins."""
    best_index, best_score = None, -np.inf
    for i, score in enumerate(mean_scores):
        if np.isnan(score):
            continue
        if score > best_score:
            best_index, best_score = i, score
    return best_index


def cross_validated_search(
    family: ModelFamily,
    grid: list[dict[str, Any]] | None,
    X: pd.DataFrame,
    y: np.ndarray,
    folds: Sequence[Fold],
    n_jobs: int = 1,
    base_seed: int = 0,
) -> GridSearchResult:
    """
    Score every grid point on every fold and select the best point.

    Args:
        family: Model family (recipe template + estimator factory)
        grid: Explicit list of parameter dicts (None uses ``family.grid``)
        X: Training features
        y: Training labels (0/1)
        folds: Folds from ``make_folds`` over the same rows
        n_jobs: joblib workers (1 runs in-process)
        base_seed: Seed from which per-task seeds are derived

    Returns:
        GridSearchResult

    Raises:
        ConfigurationError: Empty grid or no fold, or no grid point could be scored
    """
    grid = list(family.grid if grid is None else grid)
    if not grid:
        raise ConfigurationError(f"Hyperparameter grid for {family.name} is empty")
    if not folds:
        raise ConfigurationError("Cross-validation requires at least one fold")

    X = X.reset_index(drop=True)
    y = np.asarray(y).astype(int)
    n_tasks = len(grid) * len(folds)
    logger.info(
        "[cv] %s: %d grid point(s) x %d fold(s) = %d task(s), n_jobs=%d",
        family.name,
        len(grid),
        len(folds),
        n_tasks,
        n_jobs,
    )

    t0 = time.perf_counter()
    results: list[TaskResult] = Parallel(n_jobs=n_jobs, backend="loky")(
        delayed(_fit_and_score)(
            family.recipe,
            family.make_estimator,
            params,
            X,
            y,
            fold,
            point,
            get_cv_seed(base_seed, fold.index, point),
        )
        for point, params in enumerate(grid)
        for fold in folds
    )

    warning_msgs: list[str] = []
    for r in results:
        if not r.ok:
            msg = (
                f"{family.name} point {r.point} ({format_params(grid[r.point])}) "
                f"fold {r.fold} excluded: {r.error_type}: {r.error}"
            )
            logger.warning(msg)
            warning_msgs.append(msg)
    for message in dict.fromkeys(m for r in results for m in r.messages):
        logger.warning("[cv] %s worker warning: %s", family.name, message)
        warning_msgs.append(f"{family.name}: {message}")

    fold_results, summary = _aggregate(family.name, grid, results)
    best_index = select_best_point(summary["mean_score"].tolist())
    if best_index is None:
        first = next(r for r in results if not r.ok)
        raise ConfigurationError(
            f"No grid point of {family.name} could be scored: all {n_tasks} fold fit(s) "
            f"failed (first failure: {first.error_type}: {first.error})"
        )

    best_score = float(summary.loc[best_index, "mean_score"])
    logger.info(
        "[cv] %s best point %d (%s): mean ROC-AUC=%.4f over %d fold(s) [%.1fs]",
        family.name,
        best_index,
        format_params(grid[best_index]),
        best_score,
        int(summary.loc[best_index, "n_folds_scored"]),
        time.perf_counter() - t0,
    )
    return GridSearchResult(
        family=family.name,
        grid=grid,
        best_index=best_index,
        best_params=dict(grid[best_index]),
        best_score=best_score,
        fold_results=fold_results,
        summary=summary,
        warnings=tuple(warning_msgs),
    )


# ============================================================================
# Final model
# ============================================================================


def fit_final_model(
    family: ModelFamily,
    params: dict[str, Any],
    X: pd.DataFrame,
    y: np.ndarray,
    seed: int = 0,
) -> tuple[Any, Any]:
    """
    Fit the recipe and estimator on the entire training split.

    Returns:
        (fitted_recipe, fitted_estimator)

    Raises:
        ConfigurationError: Training rows hold a single label class
    """
    y = np.asarray(y).astype(int)
    if not has_both_classes(y):
        raise ConfigurationError(
            f"Cannot train {family.name}: training split holds a single label class"
        )
    fitted, Xt, yt = fit_transform_recipe(family.recipe, X.reset_index(drop=True), y, seed)
    estimator = family.make_estimator(params, seed, Xt.shape[1])
    estimator.fit(Xt, yt)
    if any(step.name == "reduce_dimensions" for step in fitted.steps):
        ratio = fitted.step("reduce_dimensions").explained_variance_ratio
        logger.info(
            "[final] %s: %d component(s) explain %.1f%% of variance",
            family.name,
            len(ratio),
            100 * ratio.sum(),
        )
    logger.info(
        "[final] %s refit on %d row(s) (%d after preprocessing), %d feature(s) out",
        family.name,
        len(y),
        len(yt),
        Xt.shape[1],
    )
    return fitted, estimator


def train_model(
    family: ModelFamily,
    X: pd.DataFrame,
    y: np.ndarray,
    folds: Sequence[Fold],
    grid: list[dict[str, Any]] | None = None,
    n_jobs: int = 1,
    seed: int = 0,
    manifest_version: str | None = None,
    age_range: tuple[int, int] | None = None,
) -> TrainedModel:
    """
    Tune ``family`` by cross-validated grid search and refit the best point.

    Args:
        family: Model family
        X: Training split features
        y: Training split labels
        folds: Folds over the training split
        grid: Optional grid override
        n_jobs: joblib workers for the search
        seed: Base seed for per-task seeds and the final refit
        manifest_version: Recorded on the artifact
        age_range: Selection age bounds, recorded on the artifact

    Returns:
        Frozen TrainedModel

    Raises:
        ConfigurationError: If no grid point could be scored
    """
    search = cross_validated_search(family, grid, X, y, folds, n_jobs=n_jobs, base_seed=seed)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        fitted, estimator = fit_final_model(family, search.best_params, X, y, seed=seed)
    refit_msgs = []
    for message in dict.fromkeys(f"{w.category.__name__}: {w.message}" for w in caught):
        logger.warning("[final] %s refit warning: %s", family.name, message)
        refit_msgs.append(f"{family.name} refit: {message}")
    return TrainedModel(
        family=family.name,
        hyperparameters=dict(search.best_params),
        recipe=fitted,
        estimator=estimator,
        feature_columns=tuple(X.columns),
        cv_results=search.results_table(),
        cv_score=search.best_score,
        warnings=search.warnings + tuple(refit_msgs),
        seed=seed,
        manifest_version=manifest_version,
        age_range=age_range,
    )
