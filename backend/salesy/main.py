r"""backend\salesy\main.py

Main entrypoint for the FastAPI application.

The API forecasts next-day demand for a shop's products, recommends stock
levels with a risk classification, explains the sales pattern and estimates
the monetary impact.  A stateless what-if endpoint re-evaluates a
recommendation under hypothetical stock and discount levels.  Configuration
is read from environment variables and YAML files in `configs/`.
"""

import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

# Load .env from repo root before settings are first read
BASE_DIR = Path(__file__).resolve().parents[2]
load_dotenv(BASE_DIR / ".env")

from .api.v1 import catalog, configs, forecasts, health, whatif  # noqa: E402
from .core.config import get_settings  # noqa: E402
from .core.observability import TokenAndRateLimitMiddleware, metrics_endpoint  # noqa: E402

settings = get_settings()

logging.getLogger(__name__).info(
    "Serving data from %s with decision settings from %s",
    settings.data_dir,
    settings.config_dir,
)

app = FastAPI(title="Salesy Forecasting API", version="0.1.0")

# Allow cross-origin requests from the dashboard (and others).
origins = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,  # In production specify your UI domain(s)
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["x-model-used"],
)
app.add_middleware(TokenAndRateLimitMiddleware)

# Include versioned routers
app.include_router(health.router, prefix="/api/v1")
app.include_router(catalog.router, prefix="/api/v1")
app.include_router(forecasts.router, prefix="/api/v1")
app.include_router(whatif.router, prefix="/api/v1")
app.include_router(configs.router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
def _root() -> RedirectResponse:
    """Redirect the root path to the interactive docs."""

    return RedirectResponse(url="/docs")


@app.get("/metrics", include_in_schema=False)
async def _metrics() -> Response:
    """Expose Prometheus metrics."""

    return metrics_endpoint()


def run() -> None:
    """Serve the API with uvicorn using the configured host and port."""

    import uvicorn

    uvicorn.run("backend.salesy.main:app", host=settings.api_host, port=settings.api_port)
