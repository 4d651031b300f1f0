r"""backend\salesy\api\v1\whatif.py

What-if simulation of a recommendation under hypothetical stock and discount.
Nothing is persisted; clients call this on every slider change.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from .forecasts import _decision_service, _error_payload
from ...models import schemas

LOGGER = logging.getLogger(__name__)

router = APIRouter()


@router.post("/what-if", response_model=schemas.WhatIfResult)
def what_if(body: schemas.WhatIfRequest) -> schemas.WhatIfResult:
    try:
        return _decision_service().what_if(
            body.recommendation,
            stock=body.stock,
            discount_percent=body.discount_percent,
            unit_price=body.unit_price,
        )
    except ValueError as exc:
        LOGGER.warning("What-if rejected: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload("invalid_request", str(exc)),
        ) from exc
