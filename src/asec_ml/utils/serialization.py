"""
Serialization utilities for model bundles and reports.
"""

import json
import logging
import warnings
from pathlib import Path
from typing import Any

import joblib
import numpy as np
import pandas as pd
import sklearn

logger = logging.getLogger(__name__)


def library_versions() -> dict[str, str]:
    """Versions recorded in saved bundles and checked on load."""
    return {
        "sklearn": sklearn.__version__,
        "pandas": pd.__version__,
        "numpy": np.__version__,
    }


def save_joblib(obj: Any, path: str | Path, compress: int = 3):
    """Save object using joblib."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    joblib.dump(obj, path, compress=compress)


def load_joblib(path: str | Path, check_versions: bool = True) -> Any:
    """
    Load object using joblib with optional version checking.

    Args:
        path: Path to joblib file
        check_versions: If True and object is a bundle with version metadata,
            warn if sklearn/pandas/numpy versions differ from the current environment

    Returns:
        Loaded object

    Warns:
        UserWarning if versions mismatch and check_versions=True
    """
    obj = joblib.load(path)

    if check_versions and isinstance(obj, dict) and isinstance(obj.get("versions"), dict):
        current_versions = library_versions()
        mismatches = [
            f"{lib}: saved={saved_ver}, current={current_versions[lib]}"
            for lib, saved_ver in obj["versions"].items()
            if lib in current_versions and saved_ver != current_versions[lib]
        ]
        if mismatches:
            warnings.warn(
                f"Model bundle version mismatch in {Path(path).name}:\n"
                + "\n".join(f"  - {m}" for m in mismatches)
                + "\nPredictions may be inconsistent.",
                UserWarning,
                stacklevel=2,
            )

    return obj


def to_builtin(obj: Any) -> Any:
    """Recursively convert numpy scalars/arrays into JSON-friendly Python types."""
    if isinstance(obj, dict):
        return {str(k): to_builtin(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_builtin(v) for v in obj]
    if isinstance(obj, np.ndarray):
        return to_builtin(obj.tolist())
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        value = float(obj)
        return None if np.isnan(value) else value
    if isinstance(obj, float) and np.isnan(obj):
        return None
    return obj


def save_json(obj: Any, path: str | Path, indent: int = 2):
    """Save object as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        json.dump(to_builtin(obj), f, indent=indent, default=str)


def load_json(path: str | Path) -> Any:
    """Load JSON file."""
    with open(path) as f:
        return json.load(f)
