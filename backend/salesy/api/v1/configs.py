"""API endpoints for reading and updating the decision settings YAML file."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from typing import Any, Dict, List, Optional

import yaml
from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field, ValidationError

from ...core.config import DecisionSettings, SafetyStockBand, get_settings, load_decision_settings, load_yaml

LOGGER = logging.getLogger(__name__)

router = APIRouter()

CONFIG_DIR = get_settings().config_dir


def _settings_path() -> str:
    return os.path.join(CONFIG_DIR, "settings.yaml")


def _safe_write_yaml(path: str, payload: Dict[str, Any]) -> None:
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(
        prefix=".tmp-", suffix=".yaml", dir=directory
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            yaml.safe_dump(payload, handle, sort_keys=False)
        shutil.move(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)


class DecisionSettingsUpdate(BaseModel):
    min_history_days: Optional[int] = Field(None, ge=2, le=365)
    moving_average_window: Optional[int] = Field(None, ge=1, le=90)
    smoothing_alpha: Optional[float] = Field(None, gt=0.0, le=1.0)
    safety_stock_bands: Optional[List[SafetyStockBand]] = None
    default_safety_stock_percent: Optional[float] = Field(None, ge=0.0, le=1.0)
    overstock_multiplier: Optional[float] = Field(None, gt=0.0)
    stockout_multiplier: Optional[float] = Field(None, gt=0.0)
    overstock_tolerance: Optional[float] = Field(None, gt=0.0)
    holding_cost_rate: Optional[float] = Field(None, ge=0.0, le=1.0)
    lost_sale_recovery_rate: Optional[float] = Field(None, ge=0.0, le=1.0)
    stockout_reduction_at_risk: Optional[int] = Field(None, ge=0, le=100)
    stockout_reduction_covered: Optional[int] = Field(None, ge=0, le=100)
    demand_elasticity: Optional[float] = Field(None, ge=0.0)
    max_discount_percent: Optional[float] = Field(None, ge=0.0, le=100.0)
    recent_window: Optional[int] = Field(None, ge=1, le=90)
    trend_threshold: Optional[float] = Field(None, ge=0.0)
    festival_uplift_threshold: Optional[float] = Field(None, ge=0.0)
    volatility_high_multiplier: Optional[float] = Field(None, gt=0.0)
    volatility_low_multiplier: Optional[float] = Field(None, ge=0.0)
    low_confidence_threshold: Optional[float] = Field(None, ge=0.0, le=100.0)


def _merge_updates(original: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    result = original.copy()
    result.update({k: v for k, v in updates.items() if v is not None})
    return result


@router.get("/configs/decision")
def get_decision_settings() -> Dict[str, Any]:
    """Return the effective settings, defaults filled in."""

    return load_decision_settings(CONFIG_DIR).model_dump()


@router.put("/configs/decision")
def put_decision_settings(body: DecisionSettingsUpdate) -> Dict[str, Any]:
    path = _settings_path()
    current = load_yaml(path)
    if not isinstance(current, dict):
        LOGGER.warning("Settings at %s are not a mapping; replacing them.", path)
        current = {}

    updated = _merge_updates(current, body.model_dump(exclude_none=True))
    try:
        effective = DecisionSettings.model_validate(updated)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_settings", "message": str(exc)},
        ) from exc

    if updated == current:
        return effective.model_dump()

    try:
        _safe_write_yaml(path, updated)
    except OSError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "write_failed", "message": str(exc)},
        ) from exc
    return effective.model_dump()
