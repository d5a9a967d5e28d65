"""
Reading decoded survey extracts (CSV or Parquet).

Decoding the fixed-width public-use files is done upstream; this module only
loads the resulting table and checks that the required raw fields exist.
"""

from pathlib import Path
from typing import Any

import pandas as pd

from asec_ml.data.normalize import RAW_COLUMNS, check_required_columns
from asec_ml.data.schema import TARGET_COL, YEAR_COL
from asec_ml.utils.logging import get_logger

logger = get_logger(__name__)


def usecols_for_extract(extra: list[str] | None = None):
    """Column filter keeping the raw fields the normalizer reads (plus ``extra``)."""
    wanted = set(RAW_COLUMNS) | set(extra or [])
    return lambda col: col in wanted


def read_extract(
    filepath: str | Path,
    *,
    validate: bool = True,
    keep_all_columns: bool = False,
) -> pd.DataFrame:
    """
    Read a decoded ASEC extract.

    Args:
        filepath: Path to a .csv or .parquet file
        validate: Check that every required raw (or analysis) field is present
        keep_all_columns: If False, drop columns the normalizer does not read

    Returns:
        DataFrame of raw records

    Raises:
        FileNotFoundError: If filepath does not exist
        ValueError: If the file format is unsupported
        DataIntegrityError: If validate=True and a required field is absent
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"File not found: {filepath}")

    suffix = filepath.suffix.lower()
    if suffix in (".csv", ".gz"):
        logger.info(f"Reading CSV: {filepath}")
        df = pd.read_csv(filepath, low_memory=False)
    elif suffix == ".parquet":
        logger.info(f"Reading Parquet: {filepath}")
        df = pd.read_parquet(filepath, engine="pyarrow")
    else:
        raise ValueError(
            f"Unsupported file format: {suffix}. Expected .csv or .parquet. File: {filepath}"
        )
    logger.info(f"Loaded {len(df):,} rows × {len(df.columns):,} columns")

    if not keep_all_columns:
        keep = usecols_for_extract()
        selected = [c for c in df.columns if keep(c)]
        # Already-normalized frames carry analysis names instead of raw ones
        if selected:
            df = df[selected]

    if validate:
        check_required_columns(df.columns)
    return df


def get_data_stats(df: pd.DataFrame) -> dict[str, Any]:
    """Summary counts for a normalized frame."""
    stats: dict[str, Any] = {"n_rows": len(df), "n_cols": len(df.columns)}
    if YEAR_COL in df.columns:
        stats["rows_by_year"] = {int(k): int(v) for k, v in df[YEAR_COL].value_counts().items()}
    if TARGET_COL in df.columns:
        stats["n_labeled"] = int(df[TARGET_COL].notna().sum())
        stats["n_employed"] = int((df[TARGET_COL] == 1).sum())
    stats["missing"] = {
        col: int(n) for col, n in df.isna().sum().items() if n > 0
    }
    return stats


def log_data_summary(df: pd.DataFrame) -> None:
    """Log summary of a normalized frame."""
    stats = get_data_stats(df)
    logger.info("Data summary:")
    logger.info(f"  Rows: {stats['n_rows']:,}")
    logger.info(f"  Columns: {stats['n_cols']:,}")
    for year, count in stats.get("rows_by_year", {}).items():
        logger.info(f"    {year}: {count:,}")
    if "n_labeled" in stats:
        logger.info(f"  Labeled: {stats['n_labeled']:,} (employed: {stats['n_employed']:,})")
    if stats["missing"]:
        logger.info("  Missing values:")
        for col, count in stats["missing"].items():
            logger.info(f"    {col}: {count:,} ({100 * count / max(stats['n_rows'], 1):.1f}%)")
