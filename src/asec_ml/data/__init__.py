"""Data handling, normalization, selection, encoding and splitting."""

from asec_ml.data.columns import resolve_feature_columns, split_features_target
from asec_ml.data.encoding import (
    CategoricalEncoder,
    encode_categoricals,
    indicator_weight,
    validate_manifest,
)
from asec_ml.data.filters import (
    labeled_records,
    partition_by,
    select_analysis_sample,
    subset_records,
)
from asec_ml.data.io import read_extract
from asec_ml.data.normalize import normalize_frame, normalize_record
from asec_ml.data.persistence import save_split_indices, save_split_metadata
from asec_ml.data.schema import (
    BINARY_COLS,
    CATEGORICAL_COLS,
    FEATURE_SETS,
    IMMIGRANT_COL,
    NUMERIC_COLS,
    TARGET_COL,
    YEAR_COL,
)
from asec_ml.data.splits import Fold, compute_split_id, make_folds, split_train_test

__all__ = [
    # Schema
    "TARGET_COL",
    "YEAR_COL",
    "IMMIGRANT_COL",
    "NUMERIC_COLS",
    "BINARY_COLS",
    "CATEGORICAL_COLS",
    "FEATURE_SETS",
    # IO
    "read_extract",
    # Normalize
    "normalize_record",
    "normalize_frame",
    # Filters
    "select_analysis_sample",
    "labeled_records",
    "subset_records",
    "partition_by",
    # Encoding
    "CategoricalEncoder",
    "encode_categoricals",
    "indicator_weight",
    "validate_manifest",
    # Splits
    "Fold",
    "split_train_test",
    "make_folds",
    "compute_split_id",
    # Columns
    "resolve_feature_columns",
    "split_features_target",
    # Persistence
    "save_split_indices",
    "save_split_metadata",
]
