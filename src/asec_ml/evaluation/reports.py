"""
ResultsWriter: output directory layout and results serialization.

Provides:
- OutputDirectories: directory structure creation and path management
- ResultsWriter: saving run settings, CV results, evaluation reports and
  model artifacts
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

import pandas as pd

from asec_ml.evaluation.evaluate import EvaluationReport, reports_to_frame
from asec_ml.models.artifact import TrainedModel, save_model_artifact
from asec_ml.utils.logging import get_logger
from asec_ml.utils.serialization import save_json

logger = get_logger(__name__)


@dataclass
class OutputDirectories:
    """
    Structured output directory paths.

    Attributes:
        root: Base output directory
        core: Run settings, resolved config and summary tables
        cv: Cross-validation results per model family
        models: Model artifacts (joblib bundles + JSON sidecars)
        reports: Evaluation reports (JSON and CSV)
        splits: Train/test split indices and metadata
    """

    root: str
    core: str
    cv: str
    models: str
    reports: str
    splits: str

    @classmethod
    def create(cls, root: str | Path, exist_ok: bool = True) -> "OutputDirectories":
        """
        Create output directory structure.

        Raises:
            OSError: If directory creation fails
        """
        root_path = Path(root)
        structure = {
            "core": "core",
            "cv": "cv",
            "models": "models",
            "reports": "reports",
            "splits": "splits",
        }
        paths = {"root": str(root_path)}
        for key, rel_path in structure.items():
            abs_path = root_path / rel_path
            abs_path.mkdir(parents=True, exist_ok=exist_ok)
            paths[key] = str(abs_path)

        logger.debug(f"Created output structure at: {root}")
        return cls(**paths)

    def get_path(self, category: str, filename: str) -> str:
        """
        Construct full path for a file in a specific category.

        Raises:
            ValueError: If category is invalid
        """
        if category not in ("root", "core", "cv", "models", "reports", "splits"):
            raise ValueError(f"Unknown output category: {category}")
        return os.path.join(getattr(self, category), filename)


class ResultsWriter:
    """
    High-level API for writing run outputs.

    Usage:
        writer = ResultsWriter(OutputDirectories.create(outdir))
        writer.save_cv_results(model)
        writer.save_reports(reports, stem="random_forest__transfer")
    """

    def __init__(self, output_dirs: OutputDirectories):
        self.dirs = output_dirs

    # ========== Settings ==========

    def save_run_settings(self, settings: Dict[str, Any]) -> str:
        """Save run metadata to core/run_settings.json."""
        path = self.dirs.get_path("core", "run_settings.json")
        save_json(settings, path)
        logger.info(f"Saved run settings: {path}")
        return path

    # ========== Cross-validation ==========

    def save_cv_results(self, model: TrainedModel) -> str:
        """Save per-fold and per-point CV scores to cv/{family}__cv_results.csv."""
        path = self.dirs.get_path("cv", f"{model.family}__cv_results.csv")
        model.cv_results.to_csv(path, index=False)
        logger.info(f"Saved CV results: {path}")
        return path

    # ========== Evaluation ==========

    def save_report(self, report: EvaluationReport, stem: str | None = None) -> str:
        """Save one evaluation report as JSON."""
        stem = stem or f"{report.family}__{report.dataset}"
        path = self.dirs.get_path("reports", f"{stem}.json")
        save_json(report.to_dict(), path)
        return path

    def save_reports(
        self,
        reports: Mapping[str, EvaluationReport],
        stem: str,
        failures: Mapping[str, str] | None = None,
    ) -> str:
        """
        Save several reports as one CSV table plus one JSON file per report.

        Failed datasets are listed in the JSON index with their error.

        Returns:
            Path to the CSV table
        """
        for report in reports.values():
            self.save_report(report)
        table = reports_to_frame(reports)
        path = self.dirs.get_path("reports", f"{stem}.csv")
        if table.empty:
            pd.DataFrame(columns=["dataset", "family"]).to_csv(path, index=False)
        else:
            table.to_csv(path, index=False)
        save_json(
            {
                "reports": {name: r.to_dict() for name, r in reports.items()},
                "failures": dict(failures or {}),
            },
            self.dirs.get_path("reports", f"{stem}.json"),
        )
        logger.info(f"Saved {len(reports)} evaluation report(s): {path}")
        return path

    # ========== Models ==========

    def save_model(self, model: TrainedModel) -> str:
        return str(save_model_artifact(model, self.dirs.models))
