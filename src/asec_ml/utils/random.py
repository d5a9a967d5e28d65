"""
Random seed management for reproducibility.

Splits, folds and resampling all take explicit seeds. The optional
SEED_GLOBAL environment variable seeds the legacy global RNGs for
single-process debugging only.
"""

import logging
import os
import random

import numpy as np

logger = logging.getLogger(__name__)

MAX_SEED = 2**32 - 1


def set_random_seed(seed: int):
    """
    Set random seed for all libraries.

    Args:
        seed: Random seed value
    """
    random.seed(seed)
    np.random.seed(seed)


def apply_seed_global() -> int | None:
    """
    Check SEED_GLOBAL environment variable and apply global seeding if set.

    Returns:
        The seed value applied, or None if SEED_GLOBAL was not set or invalid.
    """
    seed_str = os.environ.get("SEED_GLOBAL", "").strip()
    if not seed_str:
        return None

    try:
        seed = int(seed_str)
    except ValueError:
        logger.warning(
            "SEED_GLOBAL environment variable has non-integer value '%s'; ignoring.",
            seed_str,
        )
        return None

    if seed < 0 or seed > MAX_SEED:
        logger.warning("SEED_GLOBAL=%d out of valid range [0, 2^32-1]; ignoring.", seed)
        return None

    set_random_seed(seed)
    logger.info("SEED_GLOBAL=%d applied (global RNG seeded for reproducibility).", seed)
    return seed


def get_cv_seed(base_seed: int, fold_idx: int, point_idx: int = 0) -> int:
    """
    Generate a deterministic seed for one (grid point, fold) task.

    Args:
        base_seed: Base random seed
        fold_idx: Fold index (0-based)
        point_idx: Grid point index (0-based)

    Returns:
        Seed in [0, 2^32-1]
    """
    return (base_seed + point_idx * 1000 + fold_idx) % (MAX_SEED + 1)


def make_rng(seed: int | None) -> np.random.RandomState:
    """Create an isolated RandomState; never touches the global generator."""
    return np.random.RandomState(seed)
