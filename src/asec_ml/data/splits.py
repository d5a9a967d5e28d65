"""
Deterministic train/test and k-fold partitioning.

Every partition is a pure function of (records, seed, proportion/fold count):
sklearn splitters are driven by an explicit ``random_state`` and no global
RNG state is touched.
"""

import hashlib
import logging
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold, StratifiedKFold, train_test_split

from asec_ml.data.schema import TARGET_COL
from asec_ml.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class Fold(NamedTuple):
    """Positional indices of one cross-validation fold."""

    index: int
    train_idx: np.ndarray
    val_idx: np.ndarray


# ============================================================================
# Train/Test Split
# ============================================================================


def _can_stratify(y: np.ndarray, min_per_class: int) -> bool:
    _, counts = np.unique(y, return_counts=True)
    return len(counts) > 1 and counts.min() >= min_per_class


def split_indices(
    n_or_y: int | np.ndarray,
    train_fraction: float,
    seed: int,
    stratify: bool = True,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split positions 0..n-1 into sorted train and test index arrays.

    Args:
        n_or_y: Record count, or label array (enables stratification)
        train_fraction: Fraction of records assigned to train, in (0, 1)
        seed: Random seed
        stratify: Stratify on labels when a label array is given

    Returns:
        (train_idx, test_idx)

    Raises:
        ConfigurationError: If train_fraction is outside (0, 1)
    """
    if not 0.0 < train_fraction < 1.0:
        raise ConfigurationError(f"train_fraction must be in (0, 1), got {train_fraction}")

    if np.isscalar(n_or_y):
        n = int(n_or_y)
        y = None
    else:
        y = np.asarray(n_or_y)
        n = len(y)
    if n < 2:
        raise ConfigurationError(f"Need at least 2 records to split, got {n}")

    strata = None
    if stratify and y is not None:
        if _can_stratify(y, min_per_class=2):
            strata = y
        else:
            logger.warning(
                "Label classes too small to stratify the train/test split; splitting at random"
            )

    idx_train, idx_test = train_test_split(
        np.arange(n),
        train_size=train_fraction,
        random_state=seed,
        stratify=strata,
    )
    return np.sort(idx_train), np.sort(idx_test)


def split_train_test(
    df: pd.DataFrame,
    train_fraction: float,
    seed: int,
    stratify_col: Optional[str] = TARGET_COL,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Split records into train and test frames.

    Args:
        df: Records (positional order defines the partition)
        train_fraction: Fraction of records assigned to train
        seed: Random seed
        stratify_col: Label column to stratify on (None for a simple random split)

    Returns:
        (train, test), each with a fresh RangeIndex
    """
    target = df[stratify_col].to_numpy() if stratify_col is not None else len(df)
    idx_train, idx_test = split_indices(
        target, train_fraction, seed, stratify=stratify_col is not None
    )
    train = df.iloc[idx_train].reset_index(drop=True)
    test = df.iloc[idx_test].reset_index(drop=True)
    logger.info("Train/test split (seed=%d): %d train, %d test", seed, len(train), len(test))
    return train, test


# ============================================================================
# K-Fold
# ============================================================================


def make_folds(y: np.ndarray, k: int, seed: int, stratify: bool = True) -> List[Fold]:
    """
    Partition training positions into k disjoint validation folds.

    Stratified on the label when every class has at least k members;
    otherwise falls back to a shuffled plain K-fold.

    Args:
        y: Training labels
        k: Number of folds (>= 2)
        seed: Random seed
        stratify: Use stratified folds when possible

    Returns:
        List of Fold(index, train_idx, val_idx)

    Raises:
        ConfigurationError: If k < 2 or k exceeds the number of records
    """
    y = np.asarray(y)
    n = len(y)
    if k < 2:
        raise ConfigurationError(f"fold count must be >= 2, got {k}")
    if k > n:
        raise ConfigurationError(f"fold count {k} exceeds number of training records {n}")

    if stratify and _can_stratify(y, min_per_class=k):
        splitter = StratifiedKFold(n_splits=k, shuffle=True, random_state=seed)
        split_iter = splitter.split(np.zeros(n), y)
    else:
        if stratify:
            logger.warning(
                "A label class has fewer than %d members; using unstratified K-fold", k
            )
        splitter = KFold(n_splits=k, shuffle=True, random_state=seed)
        split_iter = splitter.split(np.zeros(n))

    return [
        Fold(i, np.sort(train_idx), np.sort(val_idx))
        for i, (train_idx, val_idx) in enumerate(split_iter)
    ]


# ============================================================================
# Validation & Bookkeeping
# ============================================================================


def validate_partition(parts: List[np.ndarray], total_samples: int) -> Tuple[bool, str]:
    """
    Check that index arrays are pairwise disjoint and cover 0..total_samples-1.

    Returns:
        Tuple of (is_valid, error_message). error_message is empty string if valid.
    """
    seen = np.zeros(total_samples, dtype=int)
    for i, idx in enumerate(parts):
        idx = np.asarray(idx)
        if not np.issubdtype(idx.dtype, np.integer):
            return False, f"part {i} indices must be integers, got {idx.dtype}"
        if idx.size and (idx.min() < 0 or idx.max() >= total_samples):
            return False, f"part {i} has indices outside [0, {total_samples})"
        np.add.at(seen, idx, 1)

    if np.any(seen > 1):
        return False, f"{int((seen > 1).sum())} records assigned to more than one part"
    if np.any(seen == 0):
        return False, f"{int((seen == 0).sum())} records not assigned to any part"
    return True, ""


def compute_split_id(indices: np.ndarray) -> str:
    """
    Generate reproducible hash ID for split indices.

    Args:
        indices: Array of indices

    Returns:
        12-character hex hash
    """
    sorted_idx = np.sort(np.asarray(indices, dtype=np.int64))
    return hashlib.md5(sorted_idx.tobytes()).hexdigest()[:12]


def summarize_split(
    idx_train: np.ndarray,
    idx_test: np.ndarray,
    y_train: np.ndarray,
    y_test: np.ndarray,
    seed: int | None = None,
) -> Dict[str, Any]:
    """
    Compute summary statistics for a split.

    Returns:
        Dictionary with counts, label prevalence, and split IDs
    """
    return {
        "seed": seed,
        "n_train": int(len(idx_train)),
        "n_test": int(len(idx_test)),
        "n_train_pos": int(np.sum(y_train)),
        "n_test_pos": int(np.sum(y_test)),
        "prevalence_train": float(np.mean(y_train)) if len(y_train) > 0 else 0.0,
        "prevalence_test": float(np.mean(y_test)) if len(y_test) > 0 else 0.0,
        "split_id_train": compute_split_id(idx_train),
        "split_id_test": compute_split_id(idx_test),
    }


# ============================================================================
# Class Balancing
# ============================================================================


def downsample_majority(
    y: np.ndarray,
    ratio: float,
    rng: np.random.RandomState,
) -> np.ndarray:
    """
    Downsample the majority label class to ``ratio`` x the minority count.

    Args:
        y: Binary labels
        ratio: Target majority:minority ratio (1.0 = balanced)
        rng: Random state for reproducibility

    Returns:
        Kept positions (sorted)
    """
    y = np.asarray(y)
    positions = np.arange(len(y))
    classes, counts = np.unique(y, return_counts=True)
    if len(classes) < 2:
        logger.debug("Skip downsample (single class)")
        return positions

    minority = classes[np.argmin(counts)]
    majority = classes[np.argmax(counts)]
    idx_minority = positions[y == minority]
    idx_majority = positions[y == majority]

    target = int(round(len(idx_minority) * float(ratio)))
    if target >= len(idx_majority):
        logger.debug("Keep all majority records (%d); target=%d", len(idx_majority), target)
        return positions

    keep_majority = rng.choice(idx_majority, size=target, replace=False)
    kept = np.sort(np.concatenate([idx_minority, keep_majority]).astype(int))
    logger.debug(
        "Downsample majority class %s: %d -> %d (minority=%d)",
        majority,
        len(idx_majority),
        target,
        len(idx_minority),
    )
    return kept
