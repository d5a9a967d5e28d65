"""Configuration management for ASEC-ML."""

from asec_ml.config.defaults import (
    DEFAULT_CATEGORY_COUNTS,
    DEFAULT_CV_CONFIG,
    DEFAULT_MANIFEST_VERSION,
    VALID_MODELS,
)
from asec_ml.config.loader import (
    apply_overrides,
    load_manifest,
    load_pipeline_config,
    print_config_summary,
    save_config,
)
from asec_ml.config.schema import (
    CVConfig,
    ForestConfig,
    LogisticConfig,
    ManifestConfig,
    PipelineConfig,
    RecipeConfig,
    SplitConfig,
)
from asec_ml.config.validation import ConfigValidationWarning, validate_pipeline_config

__all__ = [
    "VALID_MODELS",
    "DEFAULT_CATEGORY_COUNTS",
    "DEFAULT_CV_CONFIG",
    "DEFAULT_MANIFEST_VERSION",
    "apply_overrides",
    "load_manifest",
    "load_pipeline_config",
    "print_config_summary",
    "save_config",
    "PipelineConfig",
    "SplitConfig",
    "CVConfig",
    "RecipeConfig",
    "LogisticConfig",
    "ForestConfig",
    "ManifestConfig",
    "ConfigValidationWarning",
    "validate_pipeline_config",
]
