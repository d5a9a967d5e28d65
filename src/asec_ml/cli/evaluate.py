"""
CLI implementation for the evaluate and validate-manifest commands.
"""

import logging
from pathlib import Path
from typing import Any

import pandas as pd

from asec_ml.config.loader import load_manifest, load_pipeline_config
from asec_ml.config.schema import SelectionConfig
from asec_ml.data.encoding import validate_manifest
from asec_ml.data.filters import partition_by, select_analysis_sample, subset_records
from asec_ml.data.io import read_extract
from asec_ml.data.normalize import normalize_frame
from asec_ml.data.schema import YEAR_COL
from asec_ml.evaluation.evaluate import evaluate_many
from asec_ml.evaluation.reports import OutputDirectories, ResultsWriter
from asec_ml.exceptions import ConfigurationError
from asec_ml.models.artifact import load_model_artifact
from asec_ml.utils.logging import auto_log_path, level_from_verbosity, log_section, setup_logger

logger = logging.getLogger(__name__)


def parse_subgroup(spec: str) -> tuple[str, Any]:
    """Parse 'column=value' (numeric values become floats)."""
    if "=" not in spec:
        raise ConfigurationError(f"Subgroup must be 'column=value', got '{spec}'")
    column, value = spec.split("=", 1)
    column, value = column.strip(), value.strip()
    if not column or not value:
        raise ConfigurationError(f"Subgroup must be 'column=value', got '{spec}'")
    try:
        return column, float(value)
    except ValueError:
        return column, value


def _load_selected(infile: str | Path, age_min: int, age_max: int) -> pd.DataFrame:
    records = normalize_frame(read_extract(infile))
    records, _ = select_analysis_sample(records, age_min=age_min, age_max=age_max)
    return records


def run_evaluate(
    model_artifact: str,
    infile: str,
    outdir: str = "results/evaluate",
    years: tuple[int, ...] = (),
    subgroups: tuple[str, ...] = (),
    threshold: float = 0.5,
    verbose: int = 0,
) -> dict[str, Any]:
    """
    Evaluate a saved model on an extract, per year and per subgroup.

    Datasets: every requested year (all years present when none is given),
    plus each subgroup within each of those years.

    Returns:
        Dict with the reports and any per-dataset failures
    """
    logger = setup_logger(
        "asec_ml",
        level=level_from_verbosity(verbose),
        log_file=auto_log_path("evaluate", outdir),
    )
    log_section(logger, "ASEC-ML Evaluation")

    model = load_model_artifact(model_artifact)
    logger.info(f"Loaded {model.family} model ({model.hyperparameters}) from {model_artifact}")
    if model.age_range is not None:
        age_min, age_max = model.age_range
    else:
        defaults = SelectionConfig()
        age_min, age_max = defaults.age_min, defaults.age_max
        logger.warning(f"Artifact records no age range; using {age_min}-{age_max}")
    logger.info(f"Selecting ages {age_min}-{age_max}")
    records = _load_selected(infile, age_min, age_max)

    by_year = partition_by(records, YEAR_COL)
    if years:
        absent = [y for y in years if y not in by_year]
        for year in absent:
            logger.warning(f"Year {year} not present in {infile}")
        by_year = {y: df for y, df in by_year.items() if y in set(years)}

    datasets: dict[str, pd.DataFrame] = {}
    parsed = [parse_subgroup(s) for s in subgroups]
    for year, df in by_year.items():
        datasets[f"year_{int(year)}"] = df
        for column, value in parsed:
            tag = f"{column}={value:g}" if isinstance(value, float) else f"{column}={value}"
            datasets[f"year_{int(year)}__{tag}"] = subset_records(df, **{column: value})

    reports, failures = evaluate_many(model, datasets, threshold=threshold)
    writer = ResultsWriter(OutputDirectories.create(outdir))
    writer.save_reports(reports, stem=f"{model.family}__evaluation", failures=failures)
    return {
        "reports": {name: r.to_dict() for name, r in reports.items()},
        "failures": failures,
    }


def run_validate_manifest(
    infile: str,
    config_file: str | None = None,
    manifest_file: str | None = None,
    verbose: int = 0,
) -> dict[Any, dict[str, int]]:
    """
    Check the category manifest against every survey year in an extract.

    Raises:
        ManifestMismatchError: If a year holds more levels than declared
    """
    logger = setup_logger("asec_ml", level=level_from_verbosity(verbose))
    config = load_pipeline_config(config_file=config_file)
    manifest = load_manifest(manifest_file) if manifest_file else config.manifest
    log_section(logger, f"Category Manifest {manifest.version}")

    records = _load_selected(infile, config.selection.age_min, config.selection.age_max)
    report = validate_manifest(records, manifest.counts, by=YEAR_COL)
    for year, observed in report.items():
        logger.info(f"{year}:")
        for variable, n in observed.items():
            logger.info(f"  {variable:<14} {n:>4} / {manifest.counts[variable]}")
    return report
