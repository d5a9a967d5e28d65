"""
Configuration schema for the ASEC-ML pipeline.

Defines Pydantic models for every pipeline parameter. Defaults mirror
``config/defaults.py``.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from asec_ml.config.defaults import (
    DEFAULT_CATEGORY_COUNTS,
    DEFAULT_MANIFEST_VERSION,
    VALID_MODELS,
)

# ============================================================================
# Data Selection and Split Configuration
# ============================================================================


class SelectionConfig(BaseModel):
    """Analysis population and feature-set selection."""

    age_min: int = Field(default=18, ge=0)
    age_max: int = Field(default=65, ge=0)
    feature_set: Literal["all", "demographic"] = "all"

    @model_validator(mode="after")
    def validate_age_range(self):
        if self.age_min > self.age_max:
            raise ValueError(f"age_min ({self.age_min}) > age_max ({self.age_max})")
        return self


class SplitConfig(BaseModel):
    """Train/test split."""

    train_fraction: float = Field(default=0.8, gt=0.0, lt=1.0)
    seed: int = Field(default=42, ge=0)
    stratify: bool = True


# ============================================================================
# Cross-Validation Configuration
# ============================================================================


class CVConfig(BaseModel):
    """Cross-validation structure."""

    folds: int = Field(default=10, ge=2)
    seed: int = Field(default=42, ge=0)
    n_jobs: int = Field(default=1, description="joblib workers; -1 uses all cores")
    stratify: bool = True

    @field_validator("n_jobs")
    @classmethod
    def validate_n_jobs(cls, v: int) -> int:
        if v == 0 or v < -1:
            raise ValueError(f"n_jobs must be -1 or a positive integer, got {v}")
        return v


# ============================================================================
# Preprocessing Recipe Configuration
# ============================================================================


class RecipeConfig(BaseModel):
    """Fold-scoped preprocessing recipe parameters."""

    component_count: int = Field(default=10, ge=1)
    rare_level_threshold: float = Field(default=0.05, ge=0.0, lt=1.0)
    nzv_freq_cut: float = Field(default=19.0, gt=1.0)
    nzv_unique_cut: float = Field(default=10.0, ge=0.0, le=100.0)
    downsample: bool = True
    downsample_ratio: float = Field(default=1.0, ge=1.0)


# ============================================================================
# Model Configuration
# ============================================================================


class LogisticConfig(BaseModel):
    """Regularized logistic regression over principal components."""

    C_grid: list[float] = Field(default_factory=lambda: [0.001, 0.01, 0.1, 1.0, 10.0])
    penalty: list[Literal["l1", "l2"]] = Field(default_factory=lambda: ["l2"])
    solver: Literal["lbfgs", "liblinear", "saga"] = "lbfgs"
    max_iter: int = Field(default=1000, ge=1)

    @field_validator("C_grid")
    @classmethod
    def validate_c_grid(cls, v: list[float]) -> list[float]:
        if not v:
            raise ValueError("C_grid must not be empty")
        if any(c <= 0 for c in v):
            raise ValueError(f"C_grid values must be > 0, got {v}")
        return v

    @model_validator(mode="after")
    def validate_solver_penalty(self):
        if "l1" in self.penalty and self.solver == "lbfgs":
            raise ValueError("penalty 'l1' requires solver 'liblinear' or 'saga'")
        return self


class ForestConfig(BaseModel):
    """Random forest over plain-encoded features."""

    min_samples_leaf_grid: list[int] = Field(default_factory=lambda: [1, 5, 10, 20])
    n_estimators: int = Field(default=500, ge=1)
    max_features: int = Field(default=5, ge=1)

    @field_validator("min_samples_leaf_grid")
    @classmethod
    def validate_leaf_grid(cls, v: list[int]) -> list[int]:
        if not v:
            raise ValueError("min_samples_leaf_grid must not be empty")
        if any(leaf < 1 for leaf in v):
            raise ValueError(f"min_samples_leaf values must be >= 1, got {v}")
        return v


class ManifestConfig(BaseModel):
    """Versioned category-count manifest for indicator weighting."""

    version: str = DEFAULT_MANIFEST_VERSION
    counts: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_CATEGORY_COUNTS))

    @field_validator("counts")
    @classmethod
    def validate_counts(cls, v: dict[str, int]) -> dict[str, int]:
        bad = {k: n for k, n in v.items() if n < 1}
        if bad:
            raise ValueError(f"Category counts must be >= 1, got {bad}")
        return v


# ============================================================================
# Transfer, Evaluation and Output Configuration
# ============================================================================


class TransferConfig(BaseModel):
    """Which years train the model and where the winner is transferred."""

    train_years: list[int] = Field(default_factory=list)
    transfer_years: list[int] = Field(default_factory=list)
    subgroup_col: str | None = "immigrant"
    subgroup_value: int | float | str = 1


class EvaluationConfig(BaseModel):
    """Held-out evaluation."""

    threshold: float = Field(default=0.5, gt=0.0, lt=1.0)


class OutputConfig(BaseModel):
    """Output locations and toggles."""

    outdir: Path = Field(default=Path("results"))
    save_artifacts: bool = True
    save_split_indices: bool = True
    overwrite: bool = False


# ============================================================================
# Top-level Configuration
# ============================================================================


class PipelineConfig(BaseModel):
    """Complete pipeline configuration."""

    model_config = ConfigDict(protected_namespaces=())

    infile: Path | None = None
    run_id: str | None = None
    models: list[str] = Field(default_factory=lambda: list(VALID_MODELS))

    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    split: SplitConfig = Field(default_factory=SplitConfig)
    cv: CVConfig = Field(default_factory=CVConfig)
    recipe: RecipeConfig = Field(default_factory=RecipeConfig)
    logistic: LogisticConfig = Field(default_factory=LogisticConfig)
    forest: ForestConfig = Field(default_factory=ForestConfig)
    manifest: ManifestConfig = Field(default_factory=ManifestConfig)
    transfer: TransferConfig = Field(default_factory=TransferConfig)
    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @field_validator("models")
    @classmethod
    def validate_models(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one model family must be configured")
        invalid = [m for m in v if m not in VALID_MODELS]
        if invalid:
            raise ValueError(f"Unknown model families {invalid}; valid: {VALID_MODELS}")
        if len(set(v)) != len(v):
            raise ValueError(f"Duplicate model families: {v}")
        return v
