"""
Preprocessing recipe steps.

Each step is an immutable specification with ``fit(X, y, random_state)``
returning an immutable fitted step. Fitted steps apply their stored
parameters in ``transform`` and never recompute them. Steps that resample
rows (``Downsample``) only act in ``transform_training``; at apply time they
are the identity.
"""

import logging
import warnings
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

import numpy as np
import pandas as pd
from sklearn.decomposition import PCA

from asec_ml.data.encoding import INDICATOR_SEP, CategoricalEncoder, EncodingMode
from asec_ml.data.schema import CATEGORICAL_COLS, NIU_LEVEL, OTHER_LEVEL
from asec_ml.data.splits import downsample_majority
from asec_ml.utils.random import make_rng

logger = logging.getLogger(__name__)

ColumnScope = Literal["all", "non_indicator"]


def _scoped_columns(X: pd.DataFrame, scope: ColumnScope) -> list[str]:
    if scope == "all":
        return list(X.columns)
    if scope == "non_indicator":
        return [c for c in X.columns if INDICATOR_SEP not in c]
    raise ValueError(f"Unknown column scope: {scope}")


class FittedStep:
    """Base for fitted steps."""

    name = "step"

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        raise NotImplementedError

    def transform_training(
        self, X: pd.DataFrame, y: np.ndarray | None
    ) -> tuple[pd.DataFrame, np.ndarray | None]:
        return self.transform(X), y


# ============================================================================
# Rare-level collapsing
# ============================================================================


@dataclass(frozen=True)
class CollapseRareLevels:
    """Pool categorical levels rarer than ``threshold`` into OTHER_LEVEL."""

    threshold: float = 0.05
    columns: tuple[str, ...] | None = None

    name = "collapse_rare_levels"

    def fit(self, X: pd.DataFrame, y=None, random_state=None) -> "FittedCollapseRareLevels":
        columns = self.columns or tuple(c for c in CATEGORICAL_COLS if c in X.columns)
        kept: dict[str, frozenset] = {}
        for col in columns:
            values = X[col].dropna()
            values = values[values != NIU_LEVEL]
            if values.empty:
                kept[col] = frozenset()
                continue
            freq = values.value_counts(normalize=True)
            kept[col] = frozenset(float(v) for v in freq.index[freq >= self.threshold])
        return FittedCollapseRareLevels(kept=kept)


@dataclass(frozen=True)
class FittedCollapseRareLevels(FittedStep):
    kept: Mapping[str, frozenset]

    name = "collapse_rare_levels"

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        X = X.copy()
        for col, keep in self.kept.items():
            values = X[col]
            collapse = values.notna() & (values != NIU_LEVEL) & ~values.isin(list(keep))
            X[col] = values.where(~collapse, float(OTHER_LEVEL))
        return X


# ============================================================================
# Indicator encoding
# ============================================================================


@dataclass(frozen=True)
class Encode:
    """Expand categoricals into plain or variance-weighted indicator blocks."""

    manifest: Mapping[str, int]
    mode: EncodingMode = "plain"
    columns: tuple[str, ...] | None = None

    name = "encode"

    def fit(self, X: pd.DataFrame, y=None, random_state=None) -> "FittedEncode":
        encoder = CategoricalEncoder(self.manifest, mode=self.mode, columns=self.columns)
        return FittedEncode(encoder=encoder.fit(X))


@dataclass(frozen=True)
class FittedEncode(FittedStep):
    encoder: CategoricalEncoder

    name = "encode"

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        return self.encoder.transform(X)


# ============================================================================
# Imputation
# ============================================================================


@dataclass(frozen=True)
class ImputeMedian:
    """Fill missing values with training medians (0 for all-missing columns)."""

    name = "impute_median"

    def fit(self, X: pd.DataFrame, y=None, random_state=None) -> "FittedImputeMedian":
        medians = X.median(numeric_only=False, skipna=True).fillna(0.0)
        return FittedImputeMedian(medians=medians)


@dataclass(frozen=True)
class FittedImputeMedian(FittedStep):
    medians: pd.Series

    name = "impute_median"

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        return X.fillna(self.medians)


# ============================================================================
# Near-zero-variance filter
# ============================================================================


def near_zero_variance(values: pd.Series, freq_cut: float, unique_cut: float) -> bool:
    """
    True when a column is (near) constant.

    A column is dropped if it has a single distinct value, or if the ratio of
    the most common to the second most common value exceeds ``freq_cut`` while
    distinct values make up less than ``unique_cut`` percent of the rows.
    """
    values = values.dropna()
    if values.empty:
        return True
    counts = values.value_counts()
    if len(counts) < 2:
        return True
    freq_ratio = counts.iloc[0] / counts.iloc[1]
    percent_unique = 100.0 * len(counts) / len(values)
    return bool(freq_ratio > freq_cut and percent_unique < unique_cut)


@dataclass(frozen=True)
class DropNearZeroVariance:
    """Drop (near) constant columns."""

    freq_cut: float = 95 / 5
    unique_cut: float = 10.0

    name = "drop_near_zero_variance"

    def fit(self, X: pd.DataFrame, y=None, random_state=None) -> "FittedDropNearZeroVariance":
        dropped = tuple(
            c for c in X.columns if near_zero_variance(X[c], self.freq_cut, self.unique_cut)
        )
        if dropped:
            logger.debug(
                "Near-zero-variance filter dropped %d of %d columns", len(dropped), X.shape[1]
            )
        return FittedDropNearZeroVariance(dropped=dropped)


@dataclass(frozen=True)
class FittedDropNearZeroVariance(FittedStep):
    dropped: tuple[str, ...]

    name = "drop_near_zero_variance"

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        return X.drop(columns=[c for c in self.dropped if c in X.columns])


# ============================================================================
# Centering and scaling
# ============================================================================


@dataclass(frozen=True)
class Center:
    """Subtract training means."""

    columns: ColumnScope = "all"

    name = "center"

    def fit(self, X: pd.DataFrame, y=None, random_state=None) -> "FittedCenter":
        cols = _scoped_columns(X, self.columns)
        return FittedCenter(means=X[cols].mean(skipna=True).fillna(0.0))


@dataclass(frozen=True)
class FittedCenter(FittedStep):
    means: pd.Series

    name = "center"

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        X = X.copy()
        cols = list(self.means.index)
        X[cols] = X[cols] - self.means
        return X


@dataclass(frozen=True)
class Scale:
    """Divide by training standard deviations (ddof=1; constant columns are left as is)."""

    columns: ColumnScope = "all"

    name = "scale"

    def fit(self, X: pd.DataFrame, y=None, random_state=None) -> "FittedScale":
        cols = _scoped_columns(X, self.columns)
        stds = X[cols].std(ddof=1, skipna=True)
        stds = stds.where(stds > 0, 1.0).fillna(1.0)
        return FittedScale(stds=stds)


@dataclass(frozen=True)
class FittedScale(FittedStep):
    stds: pd.Series

    name = "scale"

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        X = X.copy()
        cols = list(self.stds.index)
        X[cols] = X[cols] / self.stds
        return X


# ============================================================================
# Dimensionality reduction
# ============================================================================


@dataclass(frozen=True)
class ReduceDimensions:
    """Project onto the top ``n_components`` principal components."""

    n_components: int = 10

    name = "reduce_dimensions"

    def fit(self, X: pd.DataFrame, y=None, random_state=None) -> "FittedReduceDimensions":
        if X.isna().any().any():
            raise ValueError("ReduceDimensions requires complete data; impute first")
        n_components = min(self.n_components, X.shape[0], X.shape[1])
        if n_components < 1:
            raise ValueError(f"Cannot reduce {X.shape[1]} column(s) over {X.shape[0]} row(s)")
        if n_components < self.n_components:
            warnings.warn(
                f"ReduceDimensions requested {self.n_components} components but only "
                f"{n_components} are available; using {n_components}",
                UserWarning,
                stacklevel=2,
            )
        pca = PCA(n_components=n_components, svd_solver="full", random_state=random_state)
        pca.fit(X.to_numpy(dtype=float))
        return FittedReduceDimensions(pca=pca, columns_in=tuple(X.columns))


@dataclass(frozen=True)
class FittedReduceDimensions(FittedStep):
    pca: PCA
    columns_in: tuple[str, ...] = field(default=())

    name = "reduce_dimensions"

    @property
    def component_names(self) -> list[str]:
        return [f"PC{i + 1}" for i in range(self.pca.n_components_)]

    @property
    def explained_variance_ratio(self) -> np.ndarray:
        return self.pca.explained_variance_ratio_

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        scores = self.pca.transform(X[list(self.columns_in)].to_numpy(dtype=float))
        return pd.DataFrame(scores, columns=self.component_names, index=X.index)


# ============================================================================
# Class balancing
# ============================================================================


@dataclass(frozen=True)
class Downsample:
    """Downsample the majority label class of the training rows (fit time only)."""

    ratio: float = 1.0

    name = "downsample"

    def fit(self, X: pd.DataFrame, y=None, random_state=None) -> "FittedDownsample":
        return FittedDownsample(ratio=self.ratio, seed=random_state)


@dataclass(frozen=True)
class FittedDownsample(FittedStep):
    ratio: float
    seed: int | None

    name = "downsample"

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        return X

    def transform_training(
        self, X: pd.DataFrame, y: np.ndarray | None
    ) -> tuple[pd.DataFrame, np.ndarray | None]:
        if y is None:
            return X, y
        kept = downsample_majority(y, self.ratio, make_rng(self.seed))
        return X.iloc[kept].reset_index(drop=True), np.asarray(y)[kept]


def describe_step(step: Any) -> dict[str, Any]:
    """Plain-dict description of a step specification (for logs and sidecars)."""
    params = {
        k: v
        for k, v in vars(step).items()
        if not k.startswith("_") and not isinstance(v, Mapping)
    }
    return {"step": step.name, **params}
