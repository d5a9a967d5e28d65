"""
ASEC-ML: Employment-status classification for CPS ASEC survey extracts

A modular, reproducible pipeline that recodes annual survey records, builds
plain and variance-weighted categorical encodings, and trains/evaluates
cross-validated classifiers of individual employment status.
"""

# Enable pandas Copy-on-Write for pandas 3.0 compatibility and better memory efficiency
# See: https://pandas.pydata.org/docs/user_guide/copy_on_write.html
import pandas as pd

pd.options.mode.copy_on_write = True

__version__ = "1.0.0"
__license__ = "MIT"

from asec_ml import (  # noqa: E402
    cli,
    config,
    data,
    evaluation,
    features,
    metrics,
    models,
    utils,
)

__all__ = [
    "__version__",
    "cli",
    "config",
    "data",
    "evaluation",
    "features",
    "metrics",
    "models",
    "utils",
]
