"""
Configuration validation and safety checks.

Pydantic covers per-field ranges; this module checks combinations of settings
before any data is read. Inconsistent settings raise ConfigurationError;
questionable ones emit ConfigValidationWarning.
"""

import logging
import warnings

from asec_ml.config.schema import PipelineConfig
from asec_ml.data.schema import ENCODED_COLS, get_feature_columns
from asec_ml.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class ConfigValidationWarning(UserWarning):
    """Warning for potential configuration issues."""


def max_encoded_width(config: PipelineConfig) -> int:
    """Upper bound on model input width: numeric columns plus manifest indicator counts."""
    features = get_feature_columns(config.selection.feature_set)
    counts = config.manifest.counts
    width = 0
    for col in features:
        if col in ENCODED_COLS:
            # +1 for a collapsed "other" level
            width += counts.get(col, 0) + 1
        else:
            width += 1
    return width


def missing_manifest_entries(config: PipelineConfig) -> list[str]:
    """Categorical features of the configured set that the manifest does not cover."""
    features = get_feature_columns(config.selection.feature_set)
    return [c for c in features if c in ENCODED_COLS and c not in config.manifest.counts]


def validate_pipeline_config(config: PipelineConfig, strictness: str = "warn") -> list[str]:
    """
    Validate a pipeline configuration before any data processing begins.

    Args:
        config: PipelineConfig instance
        strictness: "off", "warn", or "error" (applies to soft issues only)

    Returns:
        List of soft issues found (empty when clean)

    Raises:
        ConfigurationError: On inconsistent settings, or any issue when strictness="error"
    """
    errors = []
    issues = []

    missing = missing_manifest_entries(config)
    if missing:
        errors.append(
            f"Category manifest (version {config.manifest.version}) has no count for: {missing}"
        )

    width = max_encoded_width(config)
    if "logistic_pca" in config.models and config.recipe.component_count > width:
        errors.append(
            f"recipe.component_count ({config.recipe.component_count}) exceeds the maximum "
            f"encoded width ({width}) of feature set '{config.selection.feature_set}'"
        )

    if errors:
        raise ConfigurationError("Invalid pipeline configuration:\n  " + "\n  ".join(errors))

    if "random_forest" in config.models and config.forest.max_features > width:
        issues.append(
            f"forest.max_features ({config.forest.max_features}) > maximum encoded width "
            f"({width}); it is clipped to the preprocessed width at fit time"
        )

    overlap = sorted(set(config.transfer.train_years) & set(config.transfer.transfer_years))
    if overlap:
        issues.append(
            f"Transfer years {overlap} are also training years; "
            "their transfer metrics are not out-of-sample"
        )

    if config.cv.folds > 20:
        issues.append(
            f"cv.folds={config.cv.folds} is unusually large; grid search cost scales with it"
        )

    _handle_issues(issues, strictness, "Pipeline configuration")
    return issues


def _handle_issues(issues: list[str], strictness: str, context: str):
    """
    Handle validation issues based on strictness level.

    Args:
        issues: List of issue descriptions
        strictness: "off", "warn", or "error"
        context: Context string for error messages
    """
    if not issues or strictness == "off":
        return

    message = f"{context} issues:\n" + "\n".join(f"  - {issue}" for issue in issues)

    if strictness == "error":
        raise ConfigurationError(message)
    for issue in issues:
        logger.warning(issue)
    warnings.warn(message, ConfigValidationWarning, stacklevel=3)
