"""
CLI implementation for the train command.

Runs the full pipeline: normalize, select, validate the manifest, split the
training years, tune every configured model family by cross-validated grid
search, evaluate each on the test split, pick the winner by test ROC-AUC and
transfer it to later survey years and to a subpopulation.
"""

import logging
from datetime import datetime
from typing import Any

import numpy as np
import pandas as pd

from asec_ml.config.loader import load_pipeline_config, print_config_summary, save_config
from asec_ml.config.schema import PipelineConfig
from asec_ml.config.validation import validate_pipeline_config
from asec_ml.data.columns import resolve_feature_columns, split_features_target
from asec_ml.data.encoding import validate_manifest
from asec_ml.data.filters import labeled_records, select_analysis_sample, subset_records
from asec_ml.data.io import log_data_summary, read_extract
from asec_ml.data.normalize import normalize_frame
from asec_ml.data.persistence import save_split_indices, save_split_metadata
from asec_ml.data.schema import TARGET_COL, YEAR_COL
from asec_ml.data.splits import make_folds, split_indices, summarize_split
from asec_ml.evaluation.evaluate import EvaluationReport, evaluate, evaluate_many
from asec_ml.evaluation.reports import OutputDirectories, ResultsWriter
from asec_ml.exceptions import ConfigurationError
from asec_ml.models.artifact import TrainedModel
from asec_ml.models.registry import get_model_family
from asec_ml.models.training import train_model
from asec_ml.utils.logging import auto_log_path, level_from_verbosity, log_section, setup_logger

logger = logging.getLogger(__name__)


def load_records(config: PipelineConfig) -> tuple[pd.DataFrame, dict[str, Any]]:
    """Read, normalize and select the analysis sample; validate the manifest per year."""
    log_section(logger, "Loading Data")
    raw = read_extract(config.infile)
    normalized = normalize_frame(raw)
    records, selection_stats = select_analysis_sample(
        normalized, age_min=config.selection.age_min, age_max=config.selection.age_max
    )
    log_data_summary(records)

    log_section(logger, f"Validating Category Manifest (version {config.manifest.version})")
    validate_manifest(records, config.manifest.counts, by=YEAR_COL)
    return records, selection_stats


def resolve_training_years(records: pd.DataFrame, config: PipelineConfig) -> list[int]:
    """Configured training years, or every year present that is not a transfer year."""
    present = sorted(int(y) for y in records[YEAR_COL].dropna().unique())
    if config.transfer.train_years:
        years = [int(y) for y in config.transfer.train_years]
        absent = [y for y in years if y not in present]
        if absent:
            raise ConfigurationError(f"Training years {absent} not in data (present: {present})")
        return years
    transfer = {int(y) for y in config.transfer.transfer_years}
    years = [y for y in present if y not in transfer]
    if not years:
        raise ConfigurationError(
            f"No training years left after excluding transfer years {sorted(transfer)}"
        )
    return years


def pick_winner(test_reports: dict[str, EvaluationReport]) -> str:
    """Family with the highest test ROC-AUC; ties go to the first configured family."""
    winner, best = None, -np.inf
    for family, report in test_reports.items():
        score = report.roc_auc
        if not np.isnan(score) and score > best:
            winner, best = family, score
    if winner is None:
        raise ConfigurationError("No model family produced a defined test ROC-AUC")
    return winner


def build_transfer_datasets(
    records: pd.DataFrame,
    test: pd.DataFrame,
    config: PipelineConfig,
) -> dict[str, pd.DataFrame]:
    """Named record sets for transfer evaluation: each transfer year and the subgroup."""
    datasets: dict[str, pd.DataFrame] = {}
    years = [int(y) for y in config.transfer.transfer_years]
    for year in years:
        datasets[f"year_{year}"] = records.loc[records[YEAR_COL] == year].reset_index(drop=True)

    col, value = config.transfer.subgroup_col, config.transfer.subgroup_value
    if col:
        tag = f"{col}={value}"
        datasets[f"test__{tag}"] = subset_records(test, **{col: value})
        for year in years:
            datasets[f"year_{year}__{tag}"] = subset_records(
                datasets[f"year_{year}"], **{col: value}
            )

    empty = [name for name, df in datasets.items() if df.empty]
    for name in empty:
        logger.warning(f"Transfer dataset '{name}' is empty; skipping")
    return {name: df for name, df in datasets.items() if not df.empty}


def run_pipeline(config: PipelineConfig) -> dict[str, Any]:
    """
    Run training, test evaluation and transfer evaluation for a resolved config.

    Returns:
        Summary dict (winner, test and transfer metrics, output paths)
    """
    if config.infile is None:
        raise ConfigurationError(
            "Training requires an input file. Provide 'infile' in config or via --infile."
        )
    validate_pipeline_config(config)

    run_id = config.run_id or datetime.now().strftime("%Y%m%d_%H%M%S")
    dirs = OutputDirectories.create(config.output.outdir)
    writer = ResultsWriter(dirs)
    save_config(config, dirs.get_path("core", "config_resolved.yaml"))

    records, selection_stats = load_records(config)

    # Training population
    log_section(logger, "Train/Test Split")
    train_years = resolve_training_years(records, config)
    logger.info(f"Training years: {train_years}")
    pool = labeled_records(records.loc[records[YEAR_COL].isin(train_years)])
    feature_columns = resolve_feature_columns(pool.columns, config.selection.feature_set)
    logger.info(f"Feature set '{config.selection.feature_set}': {len(feature_columns)} columns")

    labels = pool[TARGET_COL].to_numpy().astype(int)
    idx_train, idx_test = split_indices(
        labels, config.split.train_fraction, config.split.seed, stratify=config.split.stratify
    )
    train = pool.iloc[idx_train].reset_index(drop=True)
    test = pool.iloc[idx_test].reset_index(drop=True)
    X_train, y_train = split_features_target(train, feature_columns)
    X_test, y_test = split_features_target(test, feature_columns)

    split_summary = summarize_split(idx_train, idx_test, y_train, y_test, seed=config.split.seed)
    logger.info(
        f"Split: {split_summary['n_train']:,} train ({split_summary['prevalence_train']:.1%} "
        f"employed), {split_summary['n_test']:,} test"
    )
    if config.output.save_split_indices:
        save_split_indices(
            dirs.splits, config.split.seed, idx_train, idx_test, overwrite=config.output.overwrite
        )
        save_split_metadata(dirs.splits, config.split.seed, split_summary, selection_stats)

    folds = make_folds(y_train, config.cv.folds, config.cv.seed, stratify=config.cv.stratify)

    # Model families
    models: dict[str, TrainedModel] = {}
    test_reports: dict[str, EvaluationReport] = {}
    for name in config.models:
        log_section(logger, f"Training {name}")
        family = get_model_family(name, config)
        model = train_model(
            family,
            X_train,
            y_train,
            folds,
            n_jobs=config.cv.n_jobs,
            seed=config.cv.seed,
            manifest_version=config.manifest.version,
            age_range=(config.selection.age_min, config.selection.age_max),
        )
        models[name] = model
        test_reports[name] = evaluate(
            model, X_test, y_test, threshold=config.evaluation.threshold, dataset="test"
        )
        writer.save_cv_results(model)
        writer.save_report(test_reports[name])
        if config.output.save_artifacts:
            writer.save_model(model)

    writer.save_reports(test_reports, stem="test_comparison")
    winner = pick_winner(test_reports)
    logger.info(f"Winner by test ROC-AUC: {winner} ({test_reports[winner].roc_auc:.4f})")

    # Transfer
    log_section(logger, f"Transfer Evaluation ({winner})")
    datasets = build_transfer_datasets(records, test, config)
    transfer_reports, failures = evaluate_many(
        models[winner], datasets, threshold=config.evaluation.threshold
    )
    if datasets:
        writer.save_reports(transfer_reports, stem=f"{winner}__transfer", failures=failures)

    summary = {
        "run_id": run_id,
        "infile": str(config.infile),
        "manifest_version": config.manifest.version,
        "train_years": train_years,
        "feature_columns": feature_columns,
        "split": split_summary,
        "selection": selection_stats,
        "cv": {
            name: {"best_params": m.hyperparameters, "cv_roc_auc": m.cv_score}
            for name, m in models.items()
        },
        "test": {name: r.to_dict() for name, r in test_reports.items()},
        "winner": winner,
        "transfer": {name: r.to_dict() for name, r in transfer_reports.items()},
        "transfer_failures": failures,
        "warnings": [w for m in models.values() for w in m.warnings],
        "outdir": dirs.root,
    }
    writer.save_run_settings(summary)
    log_section(logger, "Done")
    return summary


def run_train(
    config_file: str | None = None,
    cli_args: dict[str, Any] | None = None,
    overrides: list[str] | None = None,
    verbose: int = 0,
) -> dict[str, Any]:
    """
    Entry point for ``asec train``.

    Args:
        config_file: Path to YAML config file (optional)
        cli_args: CLI arguments mapped onto config keys (None values are ignored)
        overrides: List of config overrides in "key=value" format
        verbose: Verbosity level (0=INFO, 1+=DEBUG)
    """
    all_overrides = list(overrides) if overrides else []
    for key, value in (cli_args or {}).items():
        if value is not None:
            all_overrides.append(f"{key}={value}")

    config = load_pipeline_config(config_file=config_file, overrides=all_overrides)
    log_file = auto_log_path("train", config.output.outdir, config.run_id)
    logger = setup_logger("asec_ml", level=level_from_verbosity(verbose), log_file=log_file)
    log_section(logger, "ASEC-ML Model Training")
    print_config_summary(config, logger)
    return run_pipeline(config)

