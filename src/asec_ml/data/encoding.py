"""
Indicator encoding of categorical survey variables.

Two modes:
    - plain: an active indicator is 1
    - weighted: an active indicator is 1/sqrt(n), where n is the variable's
      category count from the manifest (a fixed external constant, never the
      count observed in the current sample). Every one-hot block then has
      squared norm 1/n whichever category is active, so high-cardinality
      variables do not dominate principal-component variance.

In both modes non-membership is 0, a missing source value leaves the whole
block NaN, and the "not in universe" level encodes as an all-zero block.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Literal

import numpy as np
import pandas as pd

from asec_ml.data.schema import ENCODED_COLS, NIU_LEVEL, OTHER_LEVEL, YEAR_COL
from asec_ml.exceptions import DataIntegrityError, ManifestMismatchError

logger = logging.getLogger(__name__)

EncodingMode = Literal["plain", "weighted"]
INDICATOR_SEP = "__"


def level_label(level: float) -> str:
    """Column suffix for a category level."""
    if level == OTHER_LEVEL:
        return "other"
    return str(int(level))


def indicator_name(variable: str, level: float) -> str:
    return f"{variable}{INDICATOR_SEP}{level_label(level)}"


def indicator_weight(n_categories: int, mode: EncodingMode) -> float:
    """Value of an active indicator for a variable with ``n_categories`` categories."""
    if mode == "plain":
        return 1.0
    if mode == "weighted":
        return 1.0 / np.sqrt(n_categories)
    raise ValueError(f"Unknown encoding mode: {mode}. Expected 'plain' or 'weighted'.")


def observed_levels(values: pd.Series) -> list[float]:
    """Sorted distinct recognized levels (excludes missing and NIU)."""
    vals = pd.to_numeric(values, errors="coerce").dropna()
    return sorted(float(v) for v in vals.unique() if v != NIU_LEVEL)


def manifest_count(manifest: Mapping[str, int], variable: str) -> int:
    """Look up a variable's category count, failing loudly when the manifest omits it."""
    if variable not in manifest:
        raise DataIntegrityError(
            f"Category manifest has no entry for '{variable}'; "
            f"cannot encode it (manifest covers: {sorted(manifest)})",
            field=variable,
        )
    return int(manifest[variable])


class CategoricalEncoder:
    """
    Expand categorical columns into indicator blocks.

    ``fit`` records the levels observed in the given records; ``transform``
    emits one indicator column per fitted level. A level seen only at
    transform time gets an all-zero block.

    Args:
        manifest: Variable -> recognized category count
        mode: "plain" (0/1) or "weighted" (0, 1/sqrt(n))
        columns: Variables to encode (default: every known categorical present)
    """

    def __init__(
        self,
        manifest: Mapping[str, int],
        mode: EncodingMode = "plain",
        columns: Iterable[str] | None = None,
    ):
        if mode not in ("plain", "weighted"):
            raise ValueError(f"Unknown encoding mode: {mode}. Expected 'plain' or 'weighted'.")
        self.manifest = dict(manifest)
        self.mode = mode
        self.columns = list(columns) if columns is not None else None

    def fit(self, df: pd.DataFrame) -> "CategoricalEncoder":
        columns = self.columns
        if columns is None:
            columns = [c for c in ENCODED_COLS if c in df.columns]
        missing = [c for c in columns if c not in df.columns]
        if missing:
            raise DataIntegrityError(
                f"Cannot encode: column(s) {missing} not present", field=missing[0]
            )

        self.levels_: dict[str, tuple[float, ...]] = {}
        self.weights_: dict[str, float] = {}
        for col in columns:
            n = manifest_count(self.manifest, col)
            levels = observed_levels(df[col])
            if len(levels) > n:
                raise ManifestMismatchError(col, expected=n, observed=len(levels))
            self.levels_[col] = tuple(levels)
            self.weights_[col] = indicator_weight(n, self.mode)

        self.feature_names_out_ = [
            indicator_name(col, level) for col, levels in self.levels_.items() for level in levels
        ]
        return self

    def _encode_block(self, col: str, values: pd.Series) -> tuple[np.ndarray, int]:
        levels = self.levels_[col]
        codes = pd.to_numeric(values, errors="coerce").to_numpy(dtype=float)
        block = np.zeros((len(codes), len(levels)), dtype=float)

        positions = pd.Index(levels, dtype=float).get_indexer(codes)
        hit = positions >= 0
        block[np.flatnonzero(hit), positions[hit]] = self.weights_[col]

        missing = np.isnan(codes)
        block[missing, :] = np.nan

        n_unseen = int((~hit & ~missing & (codes != NIU_LEVEL)).sum())
        return block, n_unseen

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        if not hasattr(self, "levels_"):
            raise RuntimeError("CategoricalEncoder must be fit before transform")
        missing = [c for c in self.levels_ if c not in df.columns]
        if missing:
            raise DataIntegrityError(
                f"Cannot encode: column(s) {missing} not present", field=missing[0]
            )

        blocks = []
        for col in self.levels_:
            block, n_unseen = self._encode_block(col, df[col])
            if n_unseen:
                logger.info(
                    "%s: %d record(s) with levels unseen at fit encoded as all-zero", col, n_unseen
                )
            names = [indicator_name(col, level) for level in self.levels_[col]]
            blocks.append(pd.DataFrame(block, columns=names, index=df.index))

        rest = df.drop(columns=list(self.levels_))
        return pd.concat([rest, *blocks], axis=1)

    def fit_transform(self, df: pd.DataFrame) -> pd.DataFrame:
        return self.fit(df).transform(df)

    def __repr__(self) -> str:
        fitted = f", n_features={len(self.feature_names_out_)}" if hasattr(self, "levels_") else ""
        return f"CategoricalEncoder(mode={self.mode!r}{fitted})"


def encode_categoricals(
    df: pd.DataFrame,
    manifest: Mapping[str, int],
    mode: EncodingMode = "plain",
    columns: Iterable[str] | None = None,
) -> pd.DataFrame:
    """One-shot fit+transform of the categorical columns in ``df``."""
    return CategoricalEncoder(manifest, mode=mode, columns=columns).fit_transform(df)


def validate_manifest(
    df: pd.DataFrame,
    manifest: Mapping[str, int],
    by: str | None = YEAR_COL,
    columns: Iterable[str] | None = None,
) -> dict[Any, dict[str, int]]:
    """
    Check the category manifest against the code sets present in each partition.

    Args:
        df: Normalized records
        manifest: Variable -> recognized category count
        by: Partition column (default: survey year); None checks the whole frame
        columns: Variables to check (default: every known categorical present)

    Returns:
        {partition value: {variable: observed level count}}

    Raises:
        DataIntegrityError: If the manifest omits a variable present in the data
        ManifestMismatchError: If any partition holds more levels than declared
    """
    if columns is None:
        columns = [c for c in ENCODED_COLS if c in df.columns]
    columns = list(columns)
    counts = {col: manifest_count(manifest, col) for col in columns}

    groups = [(None, df)] if by is None else list(df.groupby(by, sort=True))
    report: dict[Any, dict[str, int]] = {}
    violations: list[ManifestMismatchError] = []
    for key, part in groups:
        report[key] = {}
        for col in columns:
            n_observed = len(observed_levels(part[col]))
            report[key][col] = n_observed
            if n_observed > counts[col]:
                violations.append(
                    ManifestMismatchError(col, expected=counts[col], observed=n_observed, year=key)
                )

    for err in violations:
        logger.error(str(err))
    if violations:
        raise violations[0]

    logger.info(
        "Category manifest validated for %d partition(s), %d variables", len(report), len(columns)
    )
    return report
