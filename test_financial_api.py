# test_financial_api.py
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from conftest import jprint, login, make_user
from restodesk.models.common import utcnow
from restodesk.models.core import (
    Category, Ingredient, MenuItem, Order, OrderItem, OrderStatus, Shift, ShiftStatus, UserRole,
)
from restodesk.services import fallbacks, queries


def _seed_sales(db):
    cat = Category(name="Mains")
    rice = Ingredient(name="Rice", category="Grains", unit="kg", quantity=2.0)
    biryani = MenuItem(name="Biryani", price=12.0, category=cat, ingredients=[rice])
    db.add_all([cat, rice, biryani])
    db.flush()
    db.add(Order(
        total=36.0, status=OrderStatus.COMPLETED, created_at=utcnow() - timedelta(seconds=5),
        items=[OrderItem(menu_item_id=biryani.id, quantity=3, price=12.0)],
    ))
    db.commit()
    return biryani


def _fail(*a, **kw):
    raise OperationalError("SELECT", {}, Exception("no such table: order"))


def test_financial_routes_require_manager(client, db):
    make_user(db, "waiter", role=UserRole.WAITER)
    headers = login(client, "waiter")
    assert client.get("/financial/expenses").status_code == 401
    assert client.get("/financial/expenses", headers=headers).status_code == 403


def test_expenses_flow(client, db, auth_headers):
    _seed_sales(db)
    rows = jprint("GET /financial/expenses", client.get("/financial/expenses", headers=auth_headers))
    assert len(rows) == 6
    assert set(rows[0]) == {"category", "amount", "percentage", "trend"}
    amounts = [r["amount"] for r in rows]
    assert amounts == sorted(amounts, reverse=True)
    by_name = {r["category"]: r for r in rows}
    assert by_name["Rent"]["amount"] == 15000.00
    # food cost: 3 sold x 2.0 units of rice
    assert by_name["Ingredients"]["amount"] == 6.0


def test_menu_analysis_flow(client, db, auth_headers):
    biryani = _seed_sales(db)
    rows = jprint("GET /financial/menu-analysis", client.get("/financial/menu-analysis", headers=auth_headers))
    assert rows == [{
        "id": biryani.id,
        "name": "Biryani",
        "category": "Mains",
        "cost": 2.0,
        "price": 12.0,
        "sales": 3,
        "revenue": 36.0,
        "profitMargin": 83,
    }]


def test_generate_report_flow(client, db, auth_headers):
    _seed_sales(db)
    r = client.post("/financial/generate-report", headers=auth_headers, json={"reportType": "monthly"})
    report = jprint("POST /financial/generate-report", r)
    assert report["success"] is True
    assert report["reportType"] == "monthly"
    assert report["summary"]["totalRevenue"] == 36.0
    assert report["expenseBreakdown"] == {"foodCost": 6.0, "laborCost": 0.0, "overhead": 18760.90}
    assert report["topSellingItems"][0]["quantity"] == 3
    assert report["message"] == "Monthly report generated successfully"
    assert set(report["period"]) == {"start", "end"}

    # no body means a weekly report
    report = jprint("POST /financial/generate-report (default)",
                    client.post("/financial/generate-report", headers=auth_headers))
    assert report["expenseBreakdown"]["overhead"] == 4690.23


def test_generate_report_without_sales_has_zero_margin(client, auth_headers):
    r = client.post("/financial/generate-report", headers=auth_headers, json={"reportType": "yearly"})
    report = jprint("POST /financial/generate-report (empty)", r)
    assert report["summary"]["totalRevenue"] == 0
    assert report["summary"]["profitMargin"] == 0


def test_metrics_flow(client, db, auth_headers):
    _seed_sales(db)
    m = jprint("GET /financial/metrics", client.get("/financial/metrics", headers=auth_headers))
    assert m["revenue"]["daily"] == 36.0
    assert m["revenue"]["monthly"] == 36.0
    assert m["revenue"]["yearToDate"] >= m["revenue"]["monthly"]
    assert m["expenses"]["overhead"] == 18760.90
    assert m["anomalies"] == 0


def test_fallbacks_served_on_store_failure(client, auth_headers, monkeypatch):
    monkeypatch.setattr(queries, "settled_orders", _fail)

    rows = jprint("GET /financial/expenses", client.get("/financial/expenses", headers=auth_headers))
    assert rows == [r.model_dump(by_alias=True) for r in fallbacks.expenses()]
    assert rows[0] == {"category": "Ingredients", "amount": 42350.80, "percentage": 45, "trend": -1.3}

    rows = jprint("GET /financial/menu-analysis", client.get("/financial/menu-analysis", headers=auth_headers))
    assert len(rows) == 8
    assert rows[0]["name"] == "Premium Shisha Mix"

    r = client.post("/financial/generate-report", headers=auth_headers, json={"reportType": "weekly"})
    report = jprint("POST /financial/generate-report", r)
    assert report["reportType"] == "monthly"
    assert report["summary"]["profitMargin"] == 31.36
    assert report["message"] == "Report generated successfully"
    assert "expenseBreakdown" not in report

    m = jprint("GET /financial/metrics", client.get("/financial/metrics", headers=auth_headers))
    assert m["anomalies"] == 3
    assert m["revenue"]["yearToDate"] == 845678.90


@pytest.mark.parametrize("body", [{"reportType": 5}, ["weekly"], "{bad"])
def test_generate_report_treats_unusable_body_as_weekly(client, auth_headers, body):
    if isinstance(body, str):
        r = client.post("/financial/generate-report", content=body,
                        headers={**auth_headers, "Content-Type": "application/json"})
    else:
        r = client.post("/financial/generate-report", headers=auth_headers, json=body)
    report = jprint("POST /financial/generate-report (unusable body)", r)
    assert report["reportType"] == "weekly"
    assert report["expenseBreakdown"]["overhead"] == 4690.23


def test_orphan_completed_shift_does_not_break_reports(client, db, auth_headers):
    db.add(Shift(staff_id="missing", start_time=utcnow() - timedelta(hours=3), end_time=utcnow(),
                 status=ShiftStatus.COMPLETED))
    db.commit()
    report = jprint("POST /financial/generate-report",
                    client.post("/financial/generate-report", headers=auth_headers, json={"reportType": "monthly"}))
    assert report["expenseBreakdown"]["laborCost"] == 0.0
    rows = jprint("GET /financial/expenses", client.get("/financial/expenses", headers=auth_headers))
    assert {r["category"]: r["amount"] for r in rows}["Staff labor"] == 0.0
    m = jprint("GET /financial/metrics", client.get("/financial/metrics", headers=auth_headers))
    assert m["expenses"]["laborCost"] == 0.0


def test_unexpected_errors_also_serve_fallbacks(client, auth_headers, monkeypatch):
    def broken(*a, **kw):
        raise KeyError("category")

    monkeypatch.setattr(queries, "menu_items_with_ingredients", broken)
    rows = jprint("GET /financial/menu-analysis", client.get("/financial/menu-analysis", headers=auth_headers))
    assert rows[0]["name"] == "Premium Shisha Mix"

    monkeypatch.setattr(queries, "completed_shifts", broken)
    m = jprint("GET /financial/metrics", client.get("/financial/metrics", headers=auth_headers))
    assert m["anomalies"] == 3


def test_analyze_requires_owner(client, db):
    make_user(db, "boss", role=UserRole.MANAGER)
    headers = login(client, "boss")
    r = client.post("/financial/analyze", headers=headers, json={"analysisType": "menuAnalysis"})
    assert r.status_code == 403


def test_analyze_menu_flow(client, db, auth_headers):
    biryani = _seed_sales(db)
    out = jprint("POST /financial/analyze",
                 client.post("/financial/analyze", headers=auth_headers, json={"analysisType": "menuAnalysis"}))
    assert out["success"] is True
    assert out["analysisType"] == "menuAnalysis"
    assert out["message"] == "menuAnalysis analysis completed successfully"
    assert out["topPerformers"] == [{
        "id": biryani.id, "name": "Biryani", "category": "Mains", "profitMargin": 83,
        "recommendation": "Consider 10% price increase",
    }]
    assert out["underperformers"][0]["recommendation"] == "Simplify preparation process"
    assert "Biryani" in out["pricingRecommendations"]


def test_analyze_other_types(client, db, auth_headers):
    _seed_sales(db)

    def analyze(kind):
        r = client.post("/financial/analyze", headers=auth_headers, json={"analysisType": kind})
        return jprint(f"POST /financial/analyze {kind}", r)

    out = analyze("revenuePrediction")
    # a single month of history cannot be projected
    assert out["predictions"] == {"nextMonth": 0, "nextQuarter": 0, "nextSixMonths": 0, "nextYear": 0}
    assert out["growthFactors"] == [{"factor": "Mains", "impact": 0}]

    out = analyze("expenseAnalysis")
    assert [s["category"] for s in out["potentialSavings"]] == ["Utility costs", "Food waste", "Staff overtime"]
    assert out["potentialSavings"][0]["projectedSavings"] == 852.07
    assert {d["category"] for d in out["expenseDistribution"]} >= {"Ingredients", "Rent"}

    out = analyze("anomalyDetection")
    assert out["anomalies"] == [] and out["recentActivity"] == []


def test_analyze_unknown_or_unusable_type(client, auth_headers):
    out = jprint("POST /financial/analyze",
                 client.post("/financial/analyze", headers=auth_headers, json={"analysisType": "horoscope"}))
    assert out["message"] == "Analysis type not recognized"
    assert out["analysisType"] == "horoscope"
    assert set(out) == {"success", "analysisType", "timestamp", "message"}

    r = client.post("/financial/analyze", content="{bad",
                    headers={**auth_headers, "Content-Type": "application/json"})
    out = jprint("POST /financial/analyze (bad body)", r)
    assert out["analysisType"] is None
    assert out["message"] == "Analysis type not recognized"


def test_analyze_serves_fallback_on_failure(client, auth_headers, monkeypatch):
    monkeypatch.setattr(queries, "settled_orders", _fail)
    out = jprint("POST /financial/analyze",
                 client.post("/financial/analyze", headers=auth_headers, json={"analysisType": "revenuePrediction"}))
    assert out["predictions"]["nextYear"] == 1245680.75
    assert out["seasonalTrends"][2] == {"factor": "Mid-week slump", "impact": -8}
    assert out["message"] == "revenuePrediction analysis completed successfully"

    out = jprint("POST /financial/analyze",
                 client.post("/financial/analyze", headers=auth_headers, json={"analysisType": "expenseAnalysis"}))
    assert out["anomalies"][0]["supplier"] == "Supplier A"
