r"""backend/tests/test_catalog_api.py"""

from __future__ import annotations

import sys
from pathlib import Path

import pandas as pd
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.salesy.main import app  # noqa: E402
from backend.salesy.services.store_service import SalesStore  # noqa: E402

client = TestClient(app)


def _write_store(tmp_path: Path) -> SalesStore:
    pd.DataFrame(
        {"shop_id": ["s1", "s2"], "owner_id": ["alice", "bob"], "name": ["A", "B"]}
    ).to_csv(tmp_path / "shops.csv", index=False)
    pd.DataFrame(
        {
            "product_id": ["p2", "p1", "p3"],
            "shop_id": ["s1", "s1", "s2"],
            "name": ["Notebook", "Eraser", "Sugar"],
            "brand": ["Classmate", "Apsara", None],
            "current_stock": [12, 40, 7],
            "unit_price": [45.0, 5.0, 42.5],
        }
    ).to_csv(tmp_path / "products.csv", index=False)
    pd.DataFrame(
        {
            "product_id": ["p1", "p1", "p1", "p3"],
            "shop_id": ["s1", "s1", "s1", "s2"],
            "date": ["2026-03-03", "2026-03-01", "2026-03-02", "2026-03-01"],
            "quantity_sold": [4, 2, 3, 9],
            "is_festival": [False, True, False, False],
        }
    ).to_csv(tmp_path / "sales.csv", index=False)
    return SalesStore(str(tmp_path))


def test_products_listed_by_name_for_owner(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr("backend.salesy.api.v1.catalog._store", _write_store(tmp_path))

    response = client.get("/api/v1/shops/s1/products", headers={"X-Owner-Id": "alice"})

    assert response.status_code == 200
    products = response.json()
    assert [product["name"] for product in products] == ["Eraser", "Notebook"]
    assert products[0]["current_stock"] == 40
    assert products[0]["category"] is None


def test_history_is_sorted_and_scoped_to_product(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr("backend.salesy.api.v1.catalog._store", _write_store(tmp_path))

    response = client.get("/api/v1/shops/s1/products/p1/history", headers={"X-Owner-Id": "alice"})

    assert response.status_code == 200
    assert response.json() == [
        {"date": "2026-03-01", "quantity_sold": 2, "is_festival": True},
        {"date": "2026-03-02", "quantity_sold": 3, "is_festival": False},
        {"date": "2026-03-03", "quantity_sold": 4, "is_festival": False},
    ]


def test_other_tenants_cannot_read_history(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr("backend.salesy.api.v1.catalog._store", _write_store(tmp_path))

    response = client.get("/api/v1/shops/s2/products/p3/history", headers={"X-Owner-Id": "alice"})

    assert response.status_code == 403


def test_unknown_shop_and_missing_owner(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr("backend.salesy.api.v1.catalog._store", _write_store(tmp_path))

    unknown = client.get("/api/v1/shops/s9/products", headers={"X-Owner-Id": "alice"})
    assert unknown.status_code == 404
    assert unknown.json()["detail"]["error"] == "shop_not_found"

    anonymous = client.get("/api/v1/shops/s1/products")
    assert anonymous.status_code == 422


def test_history_drops_negative_and_fractional_quantities(monkeypatch, tmp_path: Path) -> None:
    store = _write_store(tmp_path)
    pd.DataFrame(
        {
            "product_id": ["p1", "p1", "p1", "p1"],
            "shop_id": ["s1", "s1", "s1", "s1"],
            "date": ["2026-03-01", "2026-03-02", "2026-03-03", "2026-03-04"],
            "quantity_sold": [2, -3, 1.5, 5],
            "is_festival": [False, False, False, False],
        }
    ).to_csv(tmp_path / "sales.csv", index=False)
    monkeypatch.setattr("backend.salesy.api.v1.catalog._store", store)

    response = client.get("/api/v1/shops/s1/products/p1/history", headers={"X-Owner-Id": "alice"})

    assert response.status_code == 200
    assert [(row["date"], row["quantity_sold"]) for row in response.json()] == [
        ("2026-03-01", 2),
        ("2026-03-04", 5),
    ]
