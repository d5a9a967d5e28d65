"""
Feature-set selection: normalized records -> (X, y) model inputs.
"""

import logging

import numpy as np
import pandas as pd

from asec_ml.data.schema import TARGET_COL, get_feature_columns
from asec_ml.exceptions import DataIntegrityError

logger = logging.getLogger(__name__)


def resolve_feature_columns(
    df_columns: pd.Index | list[str],
    feature_set: str = "all",
    exclude: list[str] | None = None,
) -> list[str]:
    """
    Resolve a named feature set against the available columns.

    Args:
        df_columns: Columns of the normalized frame
        feature_set: Name in FEATURE_SETS
        exclude: Columns to drop from the set (e.g. the subgroup flag)

    Returns:
        Ordered feature column list

    Raises:
        DataIntegrityError: If a feature of the set is absent
    """
    wanted = [c for c in get_feature_columns(feature_set) if c not in set(exclude or [])]
    available = set(df_columns)
    missing = [c for c in wanted if c not in available]
    if missing:
        raise DataIntegrityError(
            f"Feature set '{feature_set}' needs column(s) not in data: {missing}",
            field=missing[0],
        )
    return wanted


def split_features_target(
    df: pd.DataFrame,
    feature_columns: list[str],
    target_col: str = TARGET_COL,
) -> tuple[pd.DataFrame, np.ndarray]:
    """
    Extract model inputs from labeled records.

    Returns:
        (X, y) with y as an int array of 0/1 labels

    Raises:
        DataIntegrityError: If any label is missing
    """
    labels = df[target_col]
    if labels.isna().any():
        raise DataIntegrityError(
            f"{int(labels.isna().sum())} record(s) have no '{target_col}' label; "
            "select labeled records first",
            field=target_col,
        )
    X = df[feature_columns].reset_index(drop=True)
    y = labels.to_numpy().astype(int)
    return X, y
