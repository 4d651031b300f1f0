"""Routes for demand forecasting and inventory evaluation."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Header, HTTPException, Query, Response, status

from . import configs
from ...core.config import load_decision_settings
from ...models import schemas
from ...services.decision_service import DecisionService
from ...services.forecasting_service import InsufficientHistoryError
from ...services.store_service import (
    ProductNotFoundError,
    SalesStore,
    ShopNotFoundError,
    StoreError,
    TenantAccessError,
)

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_store = SalesStore()


def _error_payload(code: str, message: str) -> dict[str, str]:
    """Return a standardised error payload."""

    return {"error": code, "message": message}


def _decision_service() -> DecisionService:
    """Build the engine with the current on-disk decision settings."""

    return DecisionService(load_decision_settings(configs.CONFIG_DIR))


def store_http_error(exc: StoreError | FileNotFoundError) -> HTTPException:
    """Map storage failures onto HTTP errors."""

    if isinstance(exc, TenantAccessError):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=_error_payload("forbidden", str(exc)),
        )
    if isinstance(exc, ShopNotFoundError):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=_error_payload("shop_not_found", str(exc)),
        )
    if isinstance(exc, ProductNotFoundError):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=_error_payload("product_not_found", str(exc)),
        )
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=_error_payload(
            "data_unavailable",
            "Required dataset files are missing. Please import shop, product and sales data and retry.",
        ),
    )


def _insufficient_history(exc: InsufficientHistoryError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=_error_payload("insufficient_history", str(exc)),
    )


@router.post("/forecasts/evaluate", response_model=schemas.Evaluation)
def evaluate(body: schemas.EvaluateRequest, response: Response) -> schemas.Evaluation:
    """Evaluate an inline sales history without persisting anything."""

    history = sorted(body.history, key=lambda point: point.date)
    try:
        evaluation = _decision_service().evaluate(history, body.current_stock, body.unit_price)
    except InsufficientHistoryError as exc:
        LOGGER.warning("Evaluation rejected: %s", exc)
        raise _insufficient_history(exc) from exc

    response.headers["x-model-used"] = evaluation.forecast.model
    return evaluation


@router.post(
    "/shops/{shop_id}/products/{product_id}/forecast",
    response_model=schemas.Evaluation,
)
def generate_forecast(
    shop_id: str,
    product_id: str,
    response: Response,
    owner_id: str = Header(..., alias="X-Owner-Id"),
) -> schemas.Evaluation:
    """Forecast a stored product, persist the result and return the full evaluation."""

    LOGGER.info("Forecast request received for shop_id=%s product_id=%s", shop_id, product_id)
    try:
        product = _store.get_product(owner_id, shop_id, product_id)
        history = _store.load_history(owner_id, shop_id, product_id)
    except (StoreError, FileNotFoundError) as exc:
        LOGGER.warning("Forecast lookup failed for shop_id=%s product_id=%s: %s", shop_id, product_id, exc)
        raise store_http_error(exc) from exc

    try:
        evaluation = _decision_service().evaluate(history, product.current_stock, product.unit_price)
    except InsufficientHistoryError as exc:
        LOGGER.warning("Forecast rejected for product_id=%s: %s", product_id, exc)
        raise _insufficient_history(exc) from exc
    except Exception as exc:  # pragma: no cover - unexpected failure path
        LOGGER.exception("Unexpected error while forecasting product_id=%s", product_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_error_payload("forecast_failed", "An unexpected error occurred while forecasting."),
        ) from exc

    try:
        _store.append_forecast(owner_id, shop_id, product_id, evaluation)
    except OSError as exc:
        LOGGER.exception("Unable to persist forecast for product_id=%s", product_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_error_payload("write_failed", str(exc)),
        ) from exc

    response.headers["x-model-used"] = evaluation.forecast.model
    return evaluation


@router.get(
    "/shops/{shop_id}/products/{product_id}/forecasts",
    response_model=List[schemas.ForecastRecord],
)
def list_forecasts(
    shop_id: str,
    product_id: str,
    owner_id: str = Header(..., alias="X-Owner-Id"),
    limit: int = Query(50, ge=0, le=1000, description="Most recent records to return; 0 for all"),
) -> List[schemas.ForecastRecord]:
    """Return previously generated forecasts, oldest first."""

    try:
        return _store.list_forecasts(owner_id, shop_id, product_id, limit=limit)
    except (StoreError, FileNotFoundError) as exc:
        raise store_http_error(exc) from exc
