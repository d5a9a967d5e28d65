"""
Configuration loading and merging logic.

Supports:
1. Loading from YAML files (with ``_base`` inheritance)
2. A separate versioned category-manifest YAML
3. CLI argument overrides (dot-notation: e.g., cv.folds=5)
4. Validation, with pydantic errors surfaced as ConfigurationError
"""

import copy
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from asec_ml.config.defaults import (
    DEFAULT_CV_CONFIG,
    DEFAULT_EVALUATION_CONFIG,
    DEFAULT_FOREST_CONFIG,
    DEFAULT_LOGISTIC_CONFIG,
    DEFAULT_MANIFEST_CONFIG,
    DEFAULT_OUTPUT_CONFIG,
    DEFAULT_RECIPE_CONFIG,
    DEFAULT_SELECTION_CONFIG,
    DEFAULT_SPLIT_CONFIG,
    DEFAULT_TRANSFER_CONFIG,
)
from asec_ml.config.schema import ManifestConfig, PipelineConfig
from asec_ml.exceptions import ConfigurationError

# Keys that should always be lists
LIST_KEYS = {
    "models",
    "C_grid",
    "penalty",
    "min_samples_leaf_grid",
    "train_years",
    "transfer_years",
}

# Keys that should always be strings (not parsed as int/float)
STRING_KEYS = {
    "run_id",
    "version",
}

# Keys resolved relative to the config file's directory
PATH_KEYS = {"infile", "outdir", "manifest_file"}


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *overlay* into *base* (overlay wins on leaf conflicts).

    Returns a new dict; neither input is mutated.
    """
    merged = base.copy()
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_yaml(file_path: str | Path) -> dict[str, Any]:
    """Load configuration from YAML file.

    Supports a ``_base`` key: if present, the referenced YAML file is loaded
    first and the current file's values are deep-merged on top. The ``_base``
    path is resolved relative to the directory containing *file_path*.
    Bases can be chained (a base may itself declare ``_base``).
    """
    file_path = Path(file_path).resolve()
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")

    with open(file_path) as f:
        config_dict = yaml.safe_load(f) or {}
    if not isinstance(config_dict, dict):
        raise ConfigurationError(f"Config file {file_path} must contain a mapping at top level")

    base_ref = config_dict.pop("_base", None)
    if base_ref is not None:
        base_path = (file_path.parent / base_ref).resolve()
        config_dict = _deep_merge(load_yaml(base_path), config_dict)

    return config_dict


def resolve_paths_relative_to_config(
    config_dict: dict[str, Any], config_file: Path
) -> dict[str, Any]:
    """
    Resolve relative path values (keys in PATH_KEYS) against the config file's directory.

    Only top-level keys and keys one level down (e.g. ``output.outdir``) are resolved.
    """
    config_dir = Path(config_file).resolve().parent

    def resolve_value(value: Any) -> Any:
        if isinstance(value, str) and value and not Path(value).is_absolute():
            return str(config_dir / value)
        return value

    resolved: dict[str, Any] = {}
    for key, val in config_dict.items():
        if key in PATH_KEYS:
            resolved[key] = resolve_value(val)
        elif isinstance(val, dict):
            resolved[key] = {
                k: resolve_value(v) if k in PATH_KEYS else v for k, v in val.items()
            }
        else:
            resolved[key] = val
    return resolved


def apply_overrides(config_dict: dict[str, Any], overrides: list[str]) -> dict[str, Any]:
    """
    Apply CLI overrides to config dictionary.

    Supports dot-notation for nested keys:
        cv.folds=5 -> config_dict['cv']['folds'] = 5
        forest.min_samples_leaf_grid=1,5,10 -> [1, 5, 10]

    Args:
        config_dict: Base configuration dictionary
        overrides: List of "key=value" or "nested.key=value" strings

    Returns:
        Updated config dictionary

    Raises:
        ConfigurationError: If an override is not of the form key=value
    """
    for override in overrides:
        if "=" not in override:
            raise ConfigurationError(f"Invalid override format: {override}. Expected 'key=value'")

        key_path, value_str = override.split("=", 1)
        keys = key_path.split(".")

        target = config_dict
        for key in keys[:-1]:
            if key not in target or not isinstance(target[key], dict):
                target[key] = {}
            target = target[key]

        final_key = keys[-1]
        target[final_key] = _parse_value(
            value_str,
            force_list=final_key in LIST_KEYS,
            force_string=final_key in STRING_KEYS or final_key in PATH_KEYS,
        )

    return config_dict


def _parse_scalar(value_str: str) -> Any:
    try:
        return int(value_str)
    except ValueError:
        pass
    try:
        return float(value_str)
    except ValueError:
        pass
    return value_str


def _parse_value(value_str: str, force_list: bool = False, force_string: bool = False) -> Any:
    """
    Parse string value to appropriate Python type.

    Args:
        value_str: String to parse
        force_list: If True, always return a list (for comma-separated or single values)
        force_string: If True, always return a string (skip int/float parsing)
    """
    if force_string:
        return value_str

    lowered = value_str.lower()
    if lowered in ("true", "yes"):
        return [True] if force_list else True
    if lowered in ("false", "no"):
        return [False] if force_list else False
    if lowered in ("none", "null"):
        return [] if force_list else None

    if "," in value_str or force_list:
        return [_parse_scalar(v.strip()) for v in value_str.split(",") if v.strip()]

    return _parse_scalar(value_str)


def default_config_dict() -> dict[str, Any]:
    """Fresh nested dict of every default section."""
    return copy.deepcopy(
        {
            "selection": DEFAULT_SELECTION_CONFIG,
            "split": DEFAULT_SPLIT_CONFIG,
            "cv": DEFAULT_CV_CONFIG,
            "recipe": DEFAULT_RECIPE_CONFIG,
            "logistic": DEFAULT_LOGISTIC_CONFIG,
            "forest": DEFAULT_FOREST_CONFIG,
            "manifest": DEFAULT_MANIFEST_CONFIG,
            "transfer": DEFAULT_TRANSFER_CONFIG,
            "evaluation": DEFAULT_EVALUATION_CONFIG,
            "output": DEFAULT_OUTPUT_CONFIG,
        }
    )


def load_manifest(file_path: str | Path) -> ManifestConfig:
    """
    Load a versioned category manifest YAML::

        version: "2019.1"
        counts:
          race: 25
          occ: 633

    Raises:
        ConfigurationError: If the manifest is malformed
    """
    raw = load_yaml(file_path)
    try:
        return ManifestConfig(**raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid category manifest {file_path}:\n{e}") from e


def load_pipeline_config(
    config_file: str | Path | None = None,
    overrides: list[str] | None = None,
) -> PipelineConfig:
    """
    Load pipeline configuration from defaults, an optional YAML file, and CLI overrides.

    A ``manifest_file`` key (top level) loads the category manifest from its own
    YAML; inline ``manifest`` values take precedence over the file.

    Args:
        config_file: Path to YAML config file (optional)
        overrides: List of CLI overrides in "key=value" format (optional)

    Returns:
        Validated PipelineConfig instance

    Raises:
        ConfigurationError: If any value fails validation
    """
    config_dict = default_config_dict()

    if config_file is not None:
        config_file_path = Path(config_file)
        file_config = load_yaml(config_file_path)
        file_config = resolve_paths_relative_to_config(file_config, config_file_path)

        manifest_file = file_config.pop("manifest_file", None)
        if manifest_file is not None:
            manifest = load_manifest(manifest_file)
            config_dict["manifest"] = manifest.model_dump()

        # Manifest counts replace the defaults wholesale so a versioned
        # manifest can drop variables.
        if isinstance(file_config.get("manifest"), dict) and "counts" in file_config["manifest"]:
            config_dict["manifest"]["counts"] = {}
        config_dict = _deep_merge(config_dict, file_config)

    if overrides:
        config_dict = apply_overrides(config_dict, list(overrides))

    try:
        return PipelineConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid pipeline configuration:\n{e}") from e


def save_config(config: PipelineConfig, output_path: str | Path):
    """Save resolved configuration to YAML file."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    config_dict = config.model_dump(mode="json")

    with open(output_path, "w") as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)


def print_config_summary(config: PipelineConfig, logger: logging.Logger | None = None):
    """Print human-readable configuration summary."""
    lines = ["=" * 80, "Configuration Summary", "=" * 80]

    def format_dict(d, indent=0):
        result = []
        for key, value in d.items():
            if isinstance(value, dict) and key != "counts":
                result.append(f"{'  ' * indent}{key}:")
                result.extend(format_dict(value, indent + 1))
            else:
                result.append(f"{'  ' * indent}{key}: {value}")
        return result

    lines.extend(format_dict(config.model_dump(mode="json")))
    lines.append("=" * 80)

    for line in lines:
        if logger is not None:
            logger.info(line)
        else:
            print(line)
