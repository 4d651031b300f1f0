r"""backend\salesy\services\store_service.py

File-backed storage for shops, products, sales history and forecasts.

Tables live under ``DATA_DIR`` as CSV (or Parquet) files written by the
ingestion side of the system; generated forecasts are appended to a JSON
lines log.  Every public method takes the caller's ``owner_id`` and checks
shop ownership before touching any rows, so the forecasting services only
ever receive one tenant's data.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import pandas as pd

from ..core.config import get_settings
from ..models.schemas import (
    Evaluation,
    ForecastRecord,
    ProductRecord,
    SalesDataPoint,
)
from .io_utils import append_jsonl, iter_jsonl, prefer_parquet, table_exists

LOGGER = logging.getLogger(__name__)

SHOP_COLUMNS = ["shop_id", "owner_id", "name", "category", "location"]
PRODUCT_COLUMNS = ["product_id", "shop_id", "name", "category", "brand", "current_stock", "unit_price"]
SALES_COLUMNS = ["product_id", "shop_id", "date", "quantity_sold", "is_festival"]

_TRUE_VALUES = {"true", "1", "yes", "y", "t"}


class StoreError(Exception):
    """Base class for storage lookup failures."""


class ShopNotFoundError(StoreError):
    pass


class ProductNotFoundError(StoreError):
    pass


class TenantAccessError(StoreError):
    """Raised when a caller asks for a shop it does not own."""


class SalesStore:
    """Tenant-scoped access to the shop, product, sales and forecast tables."""

    def __init__(self, data_root: Optional[str] = None) -> None:
        self.data_root = Path(data_root or get_settings().data_dir)

    # ------------------------------------------------------------------
    def _shops_path(self) -> Path:
        return self.data_root / "shops.csv"

    def _products_path(self) -> Path:
        return self.data_root / "products.csv"

    def _sales_path(self) -> Path:
        return self.data_root / "sales.csv"

    def _forecasts_path(self) -> Path:
        return self.data_root / "forecasts.jsonl"

    def data_files_present(self) -> bool:
        return all(
            table_exists(path) for path in (self._shops_path(), self._products_path(), self._sales_path())
        )

    # ------------------------------------------------------------------
    def _load(self, path: Path, columns: List[str], id_columns: List[str]) -> pd.DataFrame:
        if not table_exists(path):
            raise FileNotFoundError(f"Dataset not found at {path}")
        frame = prefer_parquet(path, dtype={col: "string" for col in id_columns})
        missing = [col for col in id_columns if col not in frame.columns]
        if missing:
            raise ValueError(f"{path.name} is missing required columns: {missing}")
        # Optional descriptive columns may be absent from older exports.
        return frame.reindex(columns=columns)

    def _shops(self) -> pd.DataFrame:
        return self._load(self._shops_path(), SHOP_COLUMNS, ["shop_id", "owner_id"])

    def _products(self) -> pd.DataFrame:
        return self._load(self._products_path(), PRODUCT_COLUMNS, ["product_id", "shop_id"])

    def _sales(self) -> pd.DataFrame:
        return self._load(self._sales_path(), SALES_COLUMNS, ["product_id", "shop_id"])

    # ------------------------------------------------------------------
    def authorize(self, owner_id: str, shop_id: str) -> None:
        """Raise unless ``owner_id`` owns ``shop_id``."""

        shops = self._shops()
        row = shops[shops["shop_id"] == str(shop_id)]
        if row.empty:
            raise ShopNotFoundError(f"Shop '{shop_id}' was not found.")
        if str(row.iloc[0]["owner_id"]) != str(owner_id):
            LOGGER.warning("Owner %s denied access to shop %s", owner_id, shop_id)
            raise TenantAccessError(f"Shop '{shop_id}' does not belong to the caller.")

    # ------------------------------------------------------------------
    @staticmethod
    def _product_from_row(row: pd.Series) -> ProductRecord:
        def _text(value: object) -> Optional[str]:
            return None if pd.isna(value) else str(value)

        stock = row.get("current_stock")
        price = row.get("unit_price")
        return ProductRecord(
            product_id=str(row["product_id"]),
            shop_id=str(row["shop_id"]),
            name=str(row["name"]),
            category=_text(row.get("category")),
            brand=_text(row.get("brand")),
            current_stock=0 if pd.isna(stock) else int(stock),
            unit_price=0.0 if pd.isna(price) else float(price),
        )

    def list_products(self, owner_id: str, shop_id: str) -> List[ProductRecord]:
        self.authorize(owner_id, shop_id)
        products = self._products()
        rows = products[products["shop_id"] == str(shop_id)].sort_values("name")
        return [self._product_from_row(row) for _, row in rows.iterrows()]

    def get_product(self, owner_id: str, shop_id: str, product_id: str) -> ProductRecord:
        self.authorize(owner_id, shop_id)
        products = self._products()
        mask = (products["shop_id"] == str(shop_id)) & (products["product_id"] == str(product_id))
        rows = products[mask]
        if rows.empty:
            raise ProductNotFoundError(f"Product '{product_id}' was not found in shop '{shop_id}'.")
        return self._product_from_row(rows.iloc[0])

    # ------------------------------------------------------------------
    def load_history(self, owner_id: str, shop_id: str, product_id: str) -> List[SalesDataPoint]:
        """Return the product's daily sales sorted by ascending date."""

        self.get_product(owner_id, shop_id, product_id)
        sales = self._sales()
        mask = (sales["shop_id"] == str(shop_id)) & (sales["product_id"] == str(product_id))
        rows = sales.loc[mask, ["date", "quantity_sold", "is_festival"]].copy()
        if rows.empty:
            return []

        rows["date"] = pd.to_datetime(rows["date"], errors="coerce")
        rows["quantity_sold"] = pd.to_numeric(rows["quantity_sold"], errors="coerce")
        quantity = rows["quantity_sold"]
        dropped = rows["date"].isna() | quantity.isna() | (quantity < 0) | (quantity % 1 != 0)
        if dropped.any():
            LOGGER.warning(
                "Dropping %d unparseable or invalid sales rows for product %s", int(dropped.sum()), product_id
            )
            rows = rows[~dropped]

        rows["is_festival"] = rows["is_festival"].astype(str).str.strip().str.lower().isin(_TRUE_VALUES)
        rows = rows.sort_values("date", kind="stable")

        return [
            SalesDataPoint(
                date=row.date.date(),
                quantity_sold=int(row.quantity_sold),
                is_festival=bool(row.is_festival),
            )
            for row in rows.itertuples(index=False)
        ]

    # ------------------------------------------------------------------
    def append_forecast(
        self,
        owner_id: str,
        shop_id: str,
        product_id: str,
        evaluation: Evaluation,
    ) -> ForecastRecord:
        """Persist the forecast summary of an evaluation and return the stored record."""

        self.get_product(owner_id, shop_id, product_id)
        forecast = evaluation.forecast
        recommendation = evaluation.recommendation
        record = ForecastRecord(
            product_id=str(product_id),
            shop_id=str(shop_id),
            forecast_date=forecast.forward.date,
            predicted_demand=float(recommendation.forecasted_demand),
            recommended_stock=recommendation.recommended_stock,
            safety_stock=recommendation.safety_stock,
            risk_level=recommendation.risk_level,
            model_used=forecast.model,
            confidence_score=round(forecast.confidence, 2),
            created_at=datetime.now(timezone.utc),
        )
        append_jsonl(self._forecasts_path(), record.model_dump(mode="json"))
        return record

    def list_forecasts(
        self,
        owner_id: str,
        shop_id: str,
        product_id: str,
        limit: int = 50,
    ) -> List[ForecastRecord]:
        self.get_product(owner_id, shop_id, product_id)
        records = [
            ForecastRecord.model_validate(event)
            for event in iter_jsonl(self._forecasts_path())
            if event.get("shop_id") == str(shop_id) and event.get("product_id") == str(product_id)
        ]
        if limit <= 0:
            return records
        return records[-limit:]
