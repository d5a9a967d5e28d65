"""Utility functions for ASEC-ML."""

from asec_ml.utils.logging import get_logger, log_section, setup_logger
from asec_ml.utils.random import apply_seed_global, get_cv_seed, make_rng, set_random_seed
from asec_ml.utils.serialization import load_joblib, load_json, save_joblib, save_json

__all__ = [
    "setup_logger",
    "get_logger",
    "log_section",
    "set_random_seed",
    "apply_seed_global",
    "get_cv_seed",
    "make_rng",
    "save_joblib",
    "load_joblib",
    "save_json",
    "load_json",
]
