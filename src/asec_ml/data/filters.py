"""
Sample selection for the analysis population.

Filters are row masks over normalized records: each row is kept or dropped on
its own values, so the result does not depend on row order and reapplying a
filter to its own output is a no-op.
"""

import logging
from typing import Any

import pandas as pd

from asec_ml.data.schema import (
    AGE_COL,
    LF_ARMED_FORCES,
    LFSTATUS_COL,
    STATE_COL,
    TARGET_COL,
)
from asec_ml.exceptions import DataIntegrityError

logger = logging.getLogger(__name__)

DEFAULT_AGE_MIN = 18
DEFAULT_AGE_MAX = 65


def _require(df: pd.DataFrame, columns: list[str]) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise DataIntegrityError(
            f"Cannot select sample: missing column(s) {missing}. Normalize the extract first.",
            field=missing[0],
        )


def select_analysis_sample(
    df: pd.DataFrame,
    age_min: int = DEFAULT_AGE_MIN,
    age_max: int = DEFAULT_AGE_MAX,
) -> tuple[pd.DataFrame, dict[str, Any]]:
    """
    Restrict normalized records to the analysis population.

    Filters applied:
    1. Drop armed-forces respondents
    2. Drop ages outside [age_min, age_max] (and missing ages)
    3. Drop non-standard geography (state missing after normalization:
       DC, territories, multi-state groupings)

    Args:
        df: Normalized records
        age_min: Minimum age (inclusive)
        age_max: Maximum age (inclusive)

    Returns:
        (filtered_df, stats_dict) where stats_dict contains:
            - n_in / n_out: Row counts
            - n_removed_armed_forces
            - n_removed_age
            - n_removed_geography
    """
    _require(df, [LFSTATUS_COL, AGE_COL, STATE_COL])

    armed = df[LFSTATUS_COL] == LF_ARMED_FORCES
    age = df[AGE_COL]
    out_of_range = ~((age >= age_min) & (age <= age_max))
    bad_geo = df[STATE_COL].isna()

    stats: dict[str, Any] = {
        "n_in": len(df),
        "age_min": age_min,
        "age_max": age_max,
        "n_removed_armed_forces": int(armed.sum()),
        "n_removed_age": int((out_of_range & ~armed).sum()),
        "n_removed_geography": int((bad_geo & ~armed & ~out_of_range).sum()),
    }

    keep = ~(armed | out_of_range | bad_geo)
    out = df.loc[keep].reset_index(drop=True)
    stats["n_out"] = len(out)

    logger.info(
        "Sample selection: %d -> %d records (armed forces=%d, age=%d, geography=%d)",
        stats["n_in"],
        stats["n_out"],
        stats["n_removed_armed_forces"],
        stats["n_removed_age"],
        stats["n_removed_geography"],
    )
    return out, stats


def labeled_records(df: pd.DataFrame, target_col: str = TARGET_COL) -> pd.DataFrame:
    """Keep records with a defined employment label (drops those outside the labor force)."""
    _require(df, [target_col])
    return df.loc[df[target_col].notna()].reset_index(drop=True)


def subset_records(df: pd.DataFrame, **conditions: Any) -> pd.DataFrame:
    """
    Select a subpopulation by column equality, e.g. ``subset_records(df, immigrant=1)``.

    Records where a condition column is missing are excluded.
    """
    _require(df, list(conditions))
    mask = pd.Series(True, index=df.index)
    for column, value in conditions.items():
        mask &= df[column] == value
    return df.loc[mask.fillna(False).astype(bool)].reset_index(drop=True)


def partition_by(df: pd.DataFrame, key: str, dropna: bool = True) -> dict[Any, pd.DataFrame]:
    """
    Partition records by the values of ``key`` (e.g. survey year or a subgroup flag).

    Args:
        df: Records to partition
        key: Partition column
        dropna: If True, records with a missing key are left out

    Returns:
        Dict of key value -> records, in sorted key order
    """
    _require(df, [key])
    parts: dict[Any, pd.DataFrame] = {}
    for value, part in df.groupby(key, sort=True, dropna=dropna):
        parts[value] = part.reset_index(drop=True)
    return parts
