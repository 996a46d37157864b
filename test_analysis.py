# test_analysis.py
from datetime import datetime, timedelta, timezone

import pytest

from restodesk.models.core import Order, OrderStatus
from restodesk.schemas.financial import ExpenseRow, MenuAnalysisRow
from restodesk.services import analysis

UTC = timezone.utc
NOW = datetime(2024, 3, 20, 12, tzinfo=UTC)


def _row(name, margin, category="Mains"):
    return MenuAnalysisRow(id=name, name=name, category=category, cost=1.0, price=10.0,
                           sales=1, revenue=10.0, profit_margin=margin)


def test_monthly_revenue_sorts_months_numerically():
    orders = [
        Order(total=100.0, created_at=datetime(2023, 10, 5, tzinfo=UTC)),
        Order(total=50.0, created_at=datetime(2023, 9, 5, tzinfo=UTC)),
        Order(total=25.0, created_at=datetime(2023, 9, 30, tzinfo=UTC)),
        Order(total=200.0, created_at=datetime(2024, 1, 2, tzinfo=UTC)),
    ]
    assert analysis.monthly_revenue(orders) == [75.0, 100.0, 200.0]


def test_forecast_compounds_mean_growth():
    assert analysis.forecast([], 1) == 0.0
    assert analysis.forecast([100.0], 12) == 0.0
    # growth +100% then +50%: mean 75%
    assert analysis.forecast([100.0, 200.0, 300.0], 1) == pytest.approx(525.0)
    assert analysis.forecast([100.0, 200.0, 300.0], 2) == pytest.approx(300.0 * 1.75 ** 2)
    # a zero month has no usable growth rate, so the default applies
    assert analysis.forecast([0.0, 100.0], 1) == pytest.approx(105.0)


def test_potential_savings_uses_current_amounts():
    rows = [
        ExpenseRow(category="Utility costs", amount=5680.45, percentage=15, trend=5.2),
        ExpenseRow(category="Food waste", amount=4230.20, percentage=12, trend=3.8),
        ExpenseRow(category="Rent", amount=15000.0, percentage=40, trend=0),
    ]
    out = analysis.potential_savings(rows)
    assert [s["category"] for s in out] == ["Utility costs", "Food waste"]
    assert out[0]["projectedSavings"] == 852.07
    assert out[1]["projectedSavings"] == 507.62
    assert out[1]["recommendations"] == ["Optimize inventory management", "Improve portion control"]


def test_recommendations():
    assert analysis.recommend(_row("a", 87), True) == "Consider 10% price increase"
    assert analysis.recommend(_row("b", 78, "Drinks"), True) == "Promote during weekends"
    assert analysis.recommend(_row("c", 72), True) == "Feature in combo deals"
    assert analysis.recommend(_row("d", 23, "Drinks"), False) == "Adjust portion size or increase price by 15%"
    assert analysis.recommend(_row("e", 31, "Drinks"), False) == "Replace with higher margin alternatives"
    assert analysis.recommend(_row("f", 35), False) == "Simplify preparation process"


def test_pricing_recommendation_names_high_margin_items():
    text = analysis.pricing_recommendation([_row("Shisha", 87), _row("Cocktails", 81), _row("Mezze", 72)])
    assert text == "Based on current margins, Shisha and Cocktails can sustain a 10% price increase."
    assert "No menu item" in analysis.pricing_recommendation([_row("Mezze", 72)])


def test_cancellation_anomalies_flag_outliers():
    orders = (
        [Order(user_id="103-abc", status=OrderStatus.CANCELLED) for _ in range(12)]
        + [Order(user_id=f"u{i}", status=OrderStatus.CANCELLED) for i in range(5)]
        + [Order(user_id=None, status=OrderStatus.CANCELLED)]
    )
    out = analysis.cancellation_anomalies(orders)
    assert len(out) == 1
    assert out[0]["priority"] == "high" and out[0]["type"] == "cancellations"
    assert "(12)" in out[0]["details"] and "#103" in out[0]["details"]
    # average is 17 / 6 per user
    assert out[0]["excess"] == f"{round((12 / (17 / 6) - 1) * 100)}%"
    assert analysis.cancellation_anomalies([]) == []


def test_volume_anomalies():
    assert analysis.volume_anomalies(100, 100, 10.0, 10.0) == []
    out = analysis.volume_anomalies(50, 100, 20.0, 10.0)
    assert [a["type"] for a in out] == ["order_volume", "sales_spike"]
    assert "50.0%" in out[0]["details"]


def test_unknown_analysis_type_touches_nothing():
    out = analysis.compute_analysis(None, "horoscope", NOW)
    assert out == {
        "success": True,
        "analysisType": "horoscope",
        "timestamp": NOW.isoformat(),
        "message": "Analysis type not recognized",
    }


def test_percent_change_and_ratio():
    assert analysis.percent_change(110.0, 100.0) == pytest.approx(10.0)
    assert analysis.percent_change(5.0, 0.0) == 0.0
    # negative baselines are allowed
    assert analysis.percent_change(-5.0, -10.0) == pytest.approx(-50.0)
    assert analysis.ratio(25.0, 100.0) == 25.0
    assert analysis.ratio(25.0, 0.0) == 0.0


def test_business_trends_cover_six_months():
    orders = [
        Order(total=100.0, created_at=NOW - timedelta(days=1)),
        Order(total=40.0, created_at=datetime(2023, 10, 15, tzinfo=UTC)),
        Order(total=999.0, created_at=datetime(2023, 9, 15, tzinfo=UTC)),
    ]
    trends = analysis.business_trends(orders, NOW)
    assert [t.month for t in trends] == ["Oct", "Nov", "Dec", "Jan", "Feb", "Mar"]
    assert trends[0].revenue == 40.0 and trends[-1].revenue == 100.0
    assert trends[-1].profit == pytest.approx(30.0)
