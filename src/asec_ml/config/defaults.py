"""
Default configuration values.

This module is the single source of truth for default parameter values; the
pydantic schema and the YAML loader both start from these dicts.
"""

from typing import Any

# Valid model family names
VALID_MODELS = [
    "logistic_pca",
    "random_forest",
]

# Category-count manifest for indicator weighting (version 2019.1).
# Counts are the recognized code sets of the survey, not sample counts.
DEFAULT_MANIFEST_VERSION = "2019.1"
DEFAULT_CATEGORY_COUNTS: dict[str, int] = {
    "race": 25,
    "unitsstr": 5,
    "citizen": 4,
    "hispanic": 8,
    "occ": 633,
    "ind": 279,
    "educ": 15,
    "classwkr": 7,
    "state": 50,
    "whymove": 20,
    "paidgh": 3,
    "health": 4,
    "female": 2,
    "any_coverage": 2,
    "medicaid": 2,
    "spm_mortgage": 2,
}

DEFAULT_SELECTION_CONFIG: dict[str, Any] = {
    "age_min": 18,
    "age_max": 65,
    "feature_set": "all",
}

DEFAULT_SPLIT_CONFIG: dict[str, Any] = {
    "train_fraction": 0.8,
    "seed": 42,
    "stratify": True,
}

DEFAULT_CV_CONFIG: dict[str, Any] = {
    "folds": 10,
    "seed": 42,
    "n_jobs": 1,
    "stratify": True,
}

DEFAULT_RECIPE_CONFIG: dict[str, Any] = {
    "component_count": 10,
    "rare_level_threshold": 0.05,
    "nzv_freq_cut": 95 / 5,
    "nzv_unique_cut": 10.0,
    "downsample": True,
    "downsample_ratio": 1.0,
}

DEFAULT_LOGISTIC_CONFIG: dict[str, Any] = {
    "C_grid": [0.001, 0.01, 0.1, 1.0, 10.0],
    "penalty": ["l2"],
    "solver": "lbfgs",
    "max_iter": 1000,
}

DEFAULT_FOREST_CONFIG: dict[str, Any] = {
    "min_samples_leaf_grid": [1, 5, 10, 20],
    "n_estimators": 500,
    "max_features": 5,
}

DEFAULT_MANIFEST_CONFIG: dict[str, Any] = {
    "version": DEFAULT_MANIFEST_VERSION,
    "counts": dict(DEFAULT_CATEGORY_COUNTS),
}

DEFAULT_TRANSFER_CONFIG: dict[str, Any] = {
    "train_years": [],
    "transfer_years": [],
    "subgroup_col": "immigrant",
    "subgroup_value": 1,
}

DEFAULT_EVALUATION_CONFIG: dict[str, Any] = {
    "threshold": 0.5,
}

DEFAULT_OUTPUT_CONFIG: dict[str, Any] = {
    "outdir": "results",
    "save_artifacts": True,
    "save_split_indices": True,
    "overwrite": False,
}
