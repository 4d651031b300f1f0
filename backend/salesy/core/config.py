"""
Application configuration utilities.

This module defines the ``Settings`` class used throughout the service for
environment variables, the ``DecisionSettings`` model holding the tunable
forecasting and inventory heuristics, and helpers to load them from YAML
files in ``configs/``.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import List

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOGGER = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Configuration loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # API server configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: str = ""

    # Location of the shop/product/sales files and of the YAML configs
    data_dir: str = "data"
    config_dir: str = "configs"

    # Optional bearer token; auth is disabled when unset
    api_token: str | None = None
    rate_limit_per_min: int = 60


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return a cached instance of ``Settings``.

    Using a cache ensures that environment variables are only read once.
    """
    return Settings()


def load_yaml(file_path: str) -> dict:
    """Load a YAML file from the given path and return its contents.

    If the file does not exist, an empty dictionary is returned.
    """
    if not os.path.exists(file_path):
        return {}
    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


class SafetyStockBand(BaseModel):
    """Safety stock percentage applied when confidence exceeds ``min_confidence``."""

    min_confidence: float = Field(..., ge=0.0, le=100.0)
    percent: float = Field(..., ge=0.0, le=1.0)


class DecisionSettings(BaseModel):
    """Named constants behind the forecasting and inventory decision rules."""

    # Forecasting
    min_history_days: int = Field(7, ge=2)
    moving_average_window: int = Field(7, ge=1)
    smoothing_alpha: float = Field(0.3, gt=0.0, le=1.0)

    # Safety stock, checked from the highest confidence band down
    safety_stock_bands: List[SafetyStockBand] = Field(
        default_factory=lambda: [
            SafetyStockBand(min_confidence=80.0, percent=0.10),
            SafetyStockBand(min_confidence=60.0, percent=0.15),
        ]
    )
    default_safety_stock_percent: float = Field(0.20, ge=0.0, le=1.0)

    # Risk classification
    overstock_multiplier: float = Field(1.5, gt=0.0)
    stockout_multiplier: float = Field(0.8, gt=0.0)

    # Business impact
    overstock_tolerance: float = Field(1.2, gt=0.0)
    holding_cost_rate: float = Field(0.15, ge=0.0, le=1.0)
    lost_sale_recovery_rate: float = Field(0.3, ge=0.0, le=1.0)
    stockout_reduction_at_risk: int = Field(75, ge=0, le=100)
    stockout_reduction_covered: int = Field(95, ge=0, le=100)

    # What-if
    demand_elasticity: float = Field(0.5, ge=0.0)
    max_discount_percent: float = Field(50.0, ge=0.0, le=100.0)

    # Insights
    recent_window: int = Field(7, ge=1)
    trend_threshold: float = Field(0.15, ge=0.0)
    festival_uplift_threshold: float = Field(0.3, ge=0.0)
    volatility_high_multiplier: float = Field(2.0, gt=0.0)
    volatility_low_multiplier: float = Field(0.3, ge=0.0)
    low_confidence_threshold: float = Field(70.0, ge=0.0, le=100.0)

    @model_validator(mode="after")
    def check_bands_monotonic(self) -> "DecisionSettings":
        # Lower confidence must never buy less safety stock.
        percents = [band.percent for band in self.sorted_bands()]
        percents.append(self.default_safety_stock_percent)
        for higher, lower in zip(percents, percents[1:]):
            if higher > lower:
                raise ValueError(
                    "safety stock percent must not decrease as confidence falls "
                    f"({higher:g} above {lower:g})"
                )
        return self

    def sorted_bands(self) -> List[SafetyStockBand]:
        return sorted(self.safety_stock_bands, key=lambda band: band.min_confidence, reverse=True)


def load_decision_settings(config_root: str | None = None) -> DecisionSettings:
    """Return decision settings from ``<config_root>/settings.yaml``.

    Missing keys fall back to the defaults above. An invalid file is logged
    and ignored so a bad edit never takes the forecasting endpoints down.
    """

    root = config_root or get_settings().config_dir
    settings_path = os.path.join(root, "settings.yaml")
    raw = load_yaml(settings_path)
    if not isinstance(raw, dict):
        LOGGER.warning("Settings at %s are not a mapping; using defaults.", settings_path)
        return DecisionSettings()

    values = {key: value for key, value in raw.items() if value is not None}
    try:
        return DecisionSettings.model_validate(values)
    except ValidationError as exc:
        LOGGER.warning("Invalid decision settings in %s; using defaults: %s", settings_path, exc)
        return DecisionSettings()
