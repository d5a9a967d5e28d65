"""
Persistence of split indices and split metadata.

Indices are saved as single-column CSVs (``idx``) so a run's partitions can be
reloaded and compared across model families.
"""

import logging
import os
from typing import Any

import numpy as np
import pandas as pd

from asec_ml.data.splits import compute_split_id, validate_partition
from asec_ml.utils.serialization import load_json, save_json

logger = logging.getLogger(__name__)


def save_split_indices(
    outdir: str,
    seed: int,
    train_idx: np.ndarray,
    test_idx: np.ndarray,
    overwrite: bool = False,
) -> dict[str, str]:
    """Save train/test indices to CSV files.

    Args:
        outdir: Output directory path
        seed: Random seed used for split
        train_idx: Training set indices
        test_idx: Test set indices
        overwrite: Whether to overwrite existing files

    Returns:
        Dictionary mapping split name to saved file path

    Raises:
        FileExistsError: If files exist and overwrite=False
        ValueError: If indices overlap or leave gaps
    """
    total = len(train_idx) + len(test_idx)
    is_valid, error_msg = validate_partition([train_idx, test_idx], total)
    if not is_valid:
        raise ValueError(f"Invalid split indices: {error_msg}")

    paths = {
        "train": os.path.join(outdir, f"train_idx_seed{seed}.csv"),
        "test": os.path.join(outdir, f"test_idx_seed{seed}.csv"),
    }
    existing = [p for p in paths.values() if os.path.exists(p)]
    if existing and not overwrite:
        raise FileExistsError(
            "Split files already exist:\n"
            + "\n".join(f"  {p}" for p in existing)
            + "\nUse overwrite=True to replace them."
        )

    os.makedirs(outdir, exist_ok=True)
    pd.DataFrame({"idx": np.sort(np.asarray(train_idx, dtype=int))}).to_csv(
        paths["train"], index=False
    )
    pd.DataFrame({"idx": np.sort(np.asarray(test_idx, dtype=int))}).to_csv(
        paths["test"], index=False
    )
    logger.debug("Saved split indices to %s", outdir)
    return paths


def load_split_indices(outdir: str, seed: int) -> tuple[np.ndarray, np.ndarray]:
    """Load train/test indices written by ``save_split_indices``."""
    train = pd.read_csv(os.path.join(outdir, f"train_idx_seed{seed}.csv"))["idx"].to_numpy()
    test = pd.read_csv(os.path.join(outdir, f"test_idx_seed{seed}.csv"))["idx"].to_numpy()
    return train, test


def save_split_metadata(
    outdir: str,
    seed: int,
    summary: dict[str, Any],
    selection_stats: dict[str, Any] | None = None,
) -> str:
    """Save split summary (and sample-selection stats) as JSON.

    Returns:
        Path to the written metadata file
    """
    meta = dict(summary)
    meta["seed"] = seed
    if selection_stats is not None:
        meta["selection"] = selection_stats
    path = os.path.join(outdir, f"split_meta_seed{seed}.json")
    save_json(meta, path)
    return path


def verify_split_files(outdir: str, seed: int) -> bool:
    """Re-hash saved indices and compare with the IDs recorded in the metadata."""
    meta = load_json(os.path.join(outdir, f"split_meta_seed{seed}.json"))
    train, test = load_split_indices(outdir, seed)
    return (
        compute_split_id(train) == meta.get("split_id_train")
        and compute_split_id(test) == meta.get("split_id_test")
    )
