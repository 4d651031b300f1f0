r"""backend\salesy\api\v1\catalog.py"""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Header

from .forecasts import store_http_error
from ...models import schemas
from ...services.store_service import SalesStore, StoreError

LOGGER = logging.getLogger(__name__)
router = APIRouter()

_store = SalesStore()


@router.get("/shops/{shop_id}/products", response_model=List[schemas.ProductRecord])
def list_products(
    shop_id: str,
    owner_id: str = Header(..., alias="X-Owner-Id"),
) -> List[schemas.ProductRecord]:
    """Return the shop's products ordered by name."""
    try:
        return _store.list_products(owner_id, shop_id)
    except (StoreError, FileNotFoundError) as exc:
        raise store_http_error(exc) from exc


@router.get(
    "/shops/{shop_id}/products/{product_id}/history",
    response_model=List[schemas.SalesDataPoint],
)
def get_history(
    shop_id: str,
    product_id: str,
    owner_id: str = Header(..., alias="X-Owner-Id"),
) -> List[schemas.SalesDataPoint]:
    try:
        history = _store.load_history(owner_id, shop_id, product_id)
    except (StoreError, FileNotFoundError) as exc:
        raise store_http_error(exc) from exc
    LOGGER.debug("Loaded %d sales rows for product_id=%s", len(history), product_id)
    return history
