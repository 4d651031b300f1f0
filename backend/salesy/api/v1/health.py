r"""backend\salesy\api\v1\health.py

Health check endpoints.

Orchestrators and load balancers poll `/api/v1/health` for liveness.  The
payload also reports whether the shop, product and sales tables are in place,
so a fresh deployment without imported data is visible at a glance.
"""

from fastapi import APIRouter

from . import forecasts

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, object]:
    """Return a basic health indicator."""
    return {"status": "ok", "data_ready": forecasts._store.data_files_present()}
