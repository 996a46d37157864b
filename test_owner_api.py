# test_owner_api.py
from datetime import timedelta

from sqlalchemy.exc import OperationalError

from conftest import jprint, login, make_user
from restodesk.models.common import utcnow
from restodesk.models.core import (
    Category, Ingredient, MenuItem, Order, OrderItem, OrderStatus, UserRole,
)
from restodesk.services import queries


def _seed(db):
    cat = Category(name="Drinks")
    mint = Ingredient(name="Mint", category="Herbs", unit="bunch", quantity=1.0, current_stock=2, min_level=10)
    lemon = Ingredient(name="Lemon", category="Fruit", unit="kg", quantity=0.5, current_stock=8, min_level=10)
    rum = Ingredient(name="Rum", category="Spirits", unit="bottles", quantity=1.5, current_stock=30, min_level=10)
    mojito = MenuItem(name="Mojito", price=9.0, category=cat, ingredients=[mint, lemon])
    db.add_all([cat, mint, lemon, rum, mojito])
    db.flush()
    db.add_all([
        Order(total=18.0, status=OrderStatus.PAID, created_at=utcnow() - timedelta(seconds=5),
              items=[OrderItem(menu_item_id=mojito.id, quantity=2, price=9.0)]),
        Order(total=500.0, status=OrderStatus.CANCELLED, created_at=utcnow() - timedelta(seconds=5)),
    ])
    db.commit()
    return mojito


def test_dashboard_requires_owner(client, db):
    make_user(db, "boss", role=UserRole.MANAGER)
    headers = login(client, "boss")
    assert client.get("/owner/dashboard-data").status_code == 401
    assert client.get("/owner/dashboard-data", headers=headers).status_code == 403


def test_dashboard_flow(client, db, auth_headers):
    mojito = _seed(db)
    out = jprint("GET /owner/dashboard-data", client.get("/owner/dashboard-data", headers=auth_headers))
    assert set(out) == {"financialMetrics", "topSellingItems", "businessTrends", "inventoryAlerts"}

    fm = out["financialMetrics"]
    # the cancelled order is not revenue
    assert fm["revenue"]["daily"] == 18.0 and fm["revenue"]["monthly"] == 18.0
    assert fm["expenses"]["foodCost"] == 3.0
    assert fm["expenses"]["overhead"] == 18760.90
    assert "anomalies" not in fm
    # nothing last month to compare with
    assert fm["changes"] == {"revenue": 0, "profitMargin": 0, "foodCost": 0, "laborCost": 0}

    assert out["topSellingItems"] == [
        {"id": mojito.id, "name": "Mojito", "category": "Drinks", "sales": 2, "revenue": 18.0},
    ]

    trends = out["businessTrends"]
    assert len(trends) == 6
    assert trends[-1]["revenue"] == 18.0
    assert abs(trends[-1]["profit"] - 5.4) < 1e-9

    alerts = {a["name"]: a for a in out["inventoryAlerts"]}
    assert set(alerts) == {"Mint", "Lemon"}
    assert alerts["Mint"]["status"] == "critical"
    assert alerts["Lemon"] == {
        "id": alerts["Lemon"]["id"], "name": "Lemon", "currentStock": 8, "minLevel": 10, "status": "warning",
    }


def test_dashboard_fallback_on_store_failure(client, auth_headers, monkeypatch):
    def fail(*a, **kw):
        raise OperationalError("SELECT", {}, Exception("no such table: ingredient"))

    monkeypatch.setattr(queries, "low_stock_ingredients", fail)
    out = jprint("GET /owner/dashboard-data", client.get("/owner/dashboard-data", headers=auth_headers))
    assert out["financialMetrics"]["changes"] == {"revenue": 5.2, "profitMargin": 1.8, "foodCost": -0.5, "laborCost": 0.3}
    assert out["financialMetrics"]["revenue"]["yearToDate"] == 845678.90
    assert [t["month"] for t in out["businessTrends"]] == ["Jan", "Feb", "Mar", "Apr", "May", "Jun"]
    assert out["inventoryAlerts"][0] == {
        "id": "1", "name": "Premium Vodka", "currentStock": 3, "minLevel": 10, "status": "critical",
    }
    assert out["topSellingItems"][0]["name"] == "Grilled Salmon"
