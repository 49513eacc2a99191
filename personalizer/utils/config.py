"""Configuration management system using Pydantic v2 and YAML.

This module provides type-safe configuration loading with validation
for the personalization engine. Every section carries the defaults the
engine was tuned with, so an empty YAML file is a valid configuration.
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


class ScoringWeights(BaseModel):
    """Weights for combining the four match sub-scores."""

    color: float = Field(default=0.35, ge=0.0, le=1.0, description="Color match weight")
    style: float = Field(default=0.30, ge=0.0, le=1.0, description="Style match weight")
    occasion: float = Field(default=0.20, ge=0.0, le=1.0, description="Occasion match weight")
    seasonal: float = Field(default=0.15, ge=0.0, le=1.0, description="Seasonal match weight")

    @model_validator(mode='after')
    def validate_weights_sum(self) -> 'ScoringWeights':
        """Ensure scoring weights sum to 1.0."""
        total = self.color + self.style + self.occasion + self.seasonal
        if not abs(total - 1.0) < 1e-3:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total}")
        return self


class ScoringConfig(BaseModel):
    """Configuration for the match scorer."""

    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    hard_block_penalty: int = Field(default=40, ge=0, le=100, description="Penalty per hard-blocked feature")
    soft_block_penalty: int = Field(default=20, ge=0, le=100, description="Penalty per soft-blocked feature")
    temporary_block_penalty: int = Field(default=10, ge=0, le=100, description="Penalty per recent combination")
    repetition_penalty: int = Field(default=15, ge=0, le=100, description="Penalty for repetitive outfits kept in the set")
    perfect_threshold: int = Field(default=90, ge=0, le=100)
    great_threshold: int = Field(default=70, ge=0, le=100)
    exploring_threshold: int = Field(default=50, ge=0, le=100)
    neutral_score: int = Field(default=50, ge=0, le=100, description="Score for features with no signal")
    disliked_color_score: int = Field(default=20, ge=0, le=100)
    occasion_default_score: int = Field(default=70, ge=0, le=100)
    common_style_score: int = Field(default=60, ge=0, le=100)
    seasonal_style_hit: int = Field(default=90, ge=0, le=100)
    seasonal_style_miss: int = Field(default=60, ge=0, le=100)
    common_styles: list[str] = Field(
        default_factory=lambda: ["casual", "formal", "smart", "elegant", "modern", "classic"],
        description="Generic style keywords that earn the common-style score",
    )

    @model_validator(mode='after')
    def validate_thresholds(self) -> 'ScoringConfig':
        """Ensure category thresholds are strictly ordered."""
        if not self.exploring_threshold < self.great_threshold < self.perfect_threshold:
            raise ValueError("Thresholds must satisfy exploring < great < perfect")
        return self


class AggregationConfig(BaseModel):
    """Configuration for preference aggregation."""

    liked_limit: int = Field(default=100, ge=1, description="Most recent liked records read")
    worn_limit: int = Field(default=100, ge=1, description="Most recent worn records read")
    ignored_limit: int = Field(default=50, ge=1, description="Most recent ignored sessions read")
    seasonal_limit: int = Field(default=500, ge=1, description="Records read for seasonal analysis")
    shopping_limit: int = Field(default=100, ge=1, description="Shopping clicks read")
    favorite_count: int = Field(default=5, ge=1)
    disliked_count: int = Field(default=5, ge=1)
    top_style_count: int = Field(default=5, ge=1)
    combination_min_count: int = Field(default=2, ge=1)
    combination_limit: int = Field(default=5, ge=1)
    default_price_min: float = Field(default=500.0, ge=0.0)
    default_price_max: float = Field(default=2500.0, ge=0.0)
    default_average_price: float = Field(default=1500.0, ge=0.0)

    @model_validator(mode='after')
    def validate_price_range(self) -> 'AggregationConfig':
        """Ensure the default price range is ordered."""
        if self.default_price_min > self.default_price_max:
            raise ValueError("default_price_min must not exceed default_price_max")
        return self


class BlocklistConfig(BaseModel):
    """Configuration for the three-tier blocklist."""

    temporary_ttl_days: int = Field(default=30, ge=1, description="Temporary block lifetime in days")
    promotion_threshold: int = Field(default=10, ge=1, description="Soft count promoted to hard")
    ignored_pattern_threshold: float = Field(default=0.7, gt=0.0, le=1.0)
    min_ignored_batch: int = Field(default=2, ge=1)


class DiversificationConfig(BaseModel):
    """Configuration for diversification and anti-repetition."""

    min_candidates: int = Field(default=3, ge=1)
    flat_score_range: int = Field(default=5, ge=0, description="Score spread treated as no signal")
    color_window_days: int = Field(default=30, ge=1)
    style_window_days: int = Field(default=15, ge=1)
    occasion_window_days: int = Field(default=7, ge=1)
    color_overlap_threshold: float = Field(default=0.7, gt=0.0, le=1.0)


class ExplorationConfig(BaseModel):
    """Configuration for the adaptive exploration controller."""

    default_level: int = Field(default=10, ge=0, le=100)
    min_level: int = Field(default=5, ge=0, le=100)
    max_level: int = Field(default=25, ge=0, le=100)
    step: int = Field(default=2, ge=1)
    min_shown: int = Field(default=5, ge=0, description="Shown picks before adaptation applies")
    increase_at: float = Field(default=30.0, ge=0.0, le=100.0)
    decrease_below: float = Field(default=15.0, ge=0.0, le=100.0)
    color_lock_threshold: float = Field(default=85.0, ge=0.0, le=100.0)
    style_lock_threshold: float = Field(default=80.0, ge=0.0, le=100.0)
    default_forced_percentage: int = Field(default=10, ge=0, le=100)
    locked_forced_percentage: int = Field(default=40, ge=0, le=100)

    @model_validator(mode='after')
    def validate_levels(self) -> 'ExplorationConfig':
        """Ensure the default level lies inside [min_level, max_level]."""
        if not self.min_level <= self.default_level <= self.max_level:
            raise ValueError("default_level must lie between min_level and max_level")
        return self


class StoreConfig(BaseModel):
    """Configuration for store access."""

    timeout_seconds: float = Field(default=2.0, gt=0.0, description="Per-operation timeout")
    max_retries: int = Field(default=3, ge=0, description="Retries for transient write failures")
    backoff_base: float = Field(default=0.05, ge=0.0)
    backoff_factor: float = Field(default=2.0, ge=1.0)
    max_backoff: float = Field(default=1.0, ge=0.0)


class CacheConfig(BaseModel):
    """Configuration for the in-process preference cache."""

    preference_ttl_seconds: float = Field(default=3600.0, gt=0.0)
    max_entries: int = Field(default=256, ge=1)


class AppConfig(BaseModel):
    """Root configuration model containing all sub-configurations."""

    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    aggregation: AggregationConfig = Field(default_factory=AggregationConfig)
    blocklist: BlocklistConfig = Field(default_factory=BlocklistConfig)
    diversification: DiversificationConfig = Field(default_factory=DiversificationConfig)
    exploration: ExplorationConfig = Field(default_factory=ExplorationConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Choose from: {valid_levels}")
        return v_upper

    @classmethod
    def from_yaml(cls, config_path: Path | str) -> 'AppConfig':
        """Load configuration from an explicit YAML file path."""
        return load_config(config_path)


_config: Optional[AppConfig] = None


def load_config(config_path: Optional[Path | str] = None) -> AppConfig:
    """Load and validate configuration from YAML file.

    Args:
        config_path: Path to configuration file. Defaults to the
                    PERSONALIZER_CONFIG env var, then config/config.yaml
                    relative to project root.

    Returns:
        Validated AppConfig instance. Built-in defaults are returned when
        no path was requested and the default file is absent.

    Raises:
        FileNotFoundError: If an explicitly requested config file doesn't exist
        ValueError: If configuration is invalid
    """
    explicit = config_path is not None
    if config_path is None:
        env_config_path = os.environ.get('PERSONALIZER_CONFIG')
        if env_config_path:
            config_path = Path(env_config_path)
            explicit = True
        else:
            project_root = Path(__file__).parent.parent.parent
            config_path = project_root / "config" / "config.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        if not explicit:
            return AppConfig()
        raise FileNotFoundError(
            f"Configuration file not found: {config_path}\n"
            f"Set the PERSONALIZER_CONFIG environment variable to the config file path."
        )

    with open(config_path, 'r', encoding='utf-8') as f:
        config_dict = yaml.safe_load(f) or {}

    return AppConfig.model_validate(config_dict)


def get_config(config_path: Optional[Path | str] = None, reload: bool = False) -> AppConfig:
    """Get configuration instance (singleton pattern).

    Args:
        config_path: Path to configuration file (only used on first call or if reload=True)
        reload: Force reload of configuration

    Returns:
        Cached or newly loaded AppConfig instance
    """
    global _config

    if _config is None or reload:
        _config = load_config(config_path)

    return _config


def reset_config() -> None:
    """Reset cached configuration (useful for testing)."""
    global _config
    _config = None
