"""
Shared pytest fixtures for ASEC-ML tests.
"""

import logging
from types import SimpleNamespace

import numpy as np
import pandas as pd
import pytest

from asec_ml.config.defaults import DEFAULT_CATEGORY_COUNTS


def make_raw_frame(n: int = 200, seed: int = 0, year: int = 2019, **overrides) -> pd.DataFrame:
    """
    Build a raw extract with realistic IPUMS codes and sentinels.

    Every record is a labeled (employed or unemployed) civilian aged 18-65 in
    a standard state, so sample selection keeps all rows unless a test
    overrides a column.

    Args:
        n: Number of records
        seed: RNG seed
        year: Survey year for every record
        **overrides: Column -> value (scalar or sequence) replacing generated values
    """
    rng = np.random.RandomState(seed)
    raw = {
        "YEAR": np.full(n, year),
        "SERIAL": np.arange(1, n + 1),
        "PERNUM": np.ones(n, dtype=int),
        "ASECWT": rng.uniform(500, 3000, n).round(2),
        "AGE": rng.randint(18, 66, n),
        "SEX": rng.choice([1, 2], n),
        "RACE": rng.choice([100, 200, 300, 651, 801], n),
        "HISPAN": rng.choice([0, 0, 0, 100, 200, 611], n),
        "EDUC": rng.choice([73, 81, 91, 111, 123], n),
        "CITIZEN": rng.choice([1, 1, 1, 4, 5], n),
        "STATEFIP": rng.choice([6, 12, 17, 36, 48], n),
        "HEALTH": rng.choice([1, 2, 3, 4, 5], n),
        "OCC": rng.choice([0, 10, 4700, 9130], n),
        "IND": rng.choice([0, 770, 8190], n),
        "CLASSWKR": rng.choice([0, 13, 21, 25], n),
        "UNITSSTR": rng.choice([1, 11, 12, 21, 23, 26], n),
        "WHYMOVE": rng.choice([0, 0, 1, 4, 13], n),
        "PAIDGH": rng.choice([0, 10, 21, 22], n),
        "INCTOT": rng.randint(0, 120000, n),
        "INCWAGE": rng.randint(0, 100000, n),
        "INCUNEMP": rng.choice([0, 1500, 99999], n),
        "INCWELFR": rng.choice([0, 99999], n),
        "FTOTVAL": rng.randint(0, 200000, n),
        "HCOVANY": rng.choice([1, 2], n),
        "HIMCAIDLY": rng.choice([1, 2], n),
        "SPMMORT": rng.choice([1, 2], n),
        "EMPSTAT": rng.choice([10, 10, 10, 12, 21, 22], n),
    }
    df = pd.DataFrame(raw)
    for column, value in overrides.items():
        df[column] = value
    return df


def make_employment_data(
    n: int = 1000, positive_fraction: float = 0.6, seed: int = 0
) -> tuple[pd.DataFrame, np.ndarray]:
    """
    Synthetic model inputs with two informative features.

    ``inctot`` shifts with the label and ``female`` is strongly associated
    with it; ``age`` and ``educ`` are noise. Exactly ``positive_fraction`` of
    the labels are 1.
    """
    rng = np.random.RandomState(seed)
    n_pos = int(round(n * positive_fraction))
    y = np.array([1] * n_pos + [0] * (n - n_pos))
    rng.shuffle(y)
    X = pd.DataFrame(
        {
            "age": rng.randint(18, 66, n).astype(float),
            "inctot": 20000.0 + 25000.0 * y + rng.normal(0, 8000, n),
            "female": np.where(rng.uniform(size=n) < np.where(y == 1, 0.15, 0.85), 1.0, 0.0),
            "educ": rng.choice([73.0, 81.0, 91.0, 111.0], n),
        }
    )
    return X, y


def make_mock_config(**overrides):
    """
    Create a mock pipeline config for testing.

    This bypasses Pydantic validation and creates a simple namespace with
    small, fast defaults. Use this for unit tests of isolated modules.

    Args:
        **overrides: Section -> dict of attribute overrides, or top-level values

    Returns:
        SimpleNamespace with config attributes
    """
    defaults = {
        "models": ["logistic_pca", "random_forest"],
        "selection": SimpleNamespace(age_min=18, age_max=65, feature_set="all"),
        "split": SimpleNamespace(train_fraction=0.8, seed=0, stratify=True),
        "cv": SimpleNamespace(folds=3, seed=0, n_jobs=1, stratify=True),
        "recipe": SimpleNamespace(
            component_count=3,
            rare_level_threshold=0.05,
            nzv_freq_cut=19.0,
            nzv_unique_cut=10.0,
            downsample=True,
            downsample_ratio=1.0,
        ),
        "logistic": SimpleNamespace(
            C_grid=[0.1, 1.0], penalty=["l2"], solver="lbfgs", max_iter=500
        ),
        "forest": SimpleNamespace(
            min_samples_leaf_grid=[1, 5, 10, 20], n_estimators=30, max_features=2
        ),
        "manifest": SimpleNamespace(version="test", counts=dict(DEFAULT_CATEGORY_COUNTS)),
        "transfer": SimpleNamespace(
            train_years=[], transfer_years=[], subgroup_col="immigrant", subgroup_value=1
        ),
        "evaluation": SimpleNamespace(threshold=0.5),
    }

    config_dict = defaults.copy()
    for key, value in overrides.items():
        if key in config_dict and isinstance(value, dict):
            for k2, v2 in value.items():
                setattr(config_dict[key], k2, v2)
        else:
            config_dict[key] = value

    return SimpleNamespace(**config_dict)


@pytest.fixture
def raw_frame():
    return make_raw_frame()


@pytest.fixture
def employment_data():
    return make_employment_data()


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """CLI entrypoints attach handlers to the package logger; detach them after each test."""
    yield
    pkg_logger = logging.getLogger("asec_ml")
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
        handler.close()
    pkg_logger.propagate = True
    pkg_logger.setLevel(logging.NOTSET)
