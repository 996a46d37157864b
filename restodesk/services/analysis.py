"""Owner analyses (forecast, savings, menu performers, anomaly scan) and the owner dashboard.

Built on the same loaders and cost helpers as :mod:`restodesk.services.reporting`;
the entry points are guarded the same way, so callers only ever see
:class:`~restodesk.services.reporting.AggregationError`.
"""
import logging
from collections import Counter, defaultdict
from datetime import datetime
from typing import Iterable

from sqlalchemy.orm import Session

from restodesk.models.common import utcnow, as_utc
from restodesk.models.core import Order, OrderStatus
from restodesk.schemas.financial import (
    BusinessTrend, DashboardData, DashboardItem, DashboardMetrics, ExpenseRow,
    InventoryAlert, MenuAnalysisRow, MetricChanges,
)
from restodesk.services import queries, reporting
from restodesk.services.inventory import MONTHS
from restodesk.services.periods import (
    ReportPeriod, shift_months, month_windows, metric_windows, trailing_months,
)
from restodesk.services.reporting import (
    OVERHEAD, guarded, revenue, ingredient_cost, labor_cost, metric_blocks,
    analyze_menu, top_selling_items, trend, round_half_up,
)

logger = logging.getLogger(__name__)

ANALYSIS_TYPES = ("revenuePrediction", "expenseAnalysis", "menuAnalysis", "anomalyDetection")

DEFAULT_GROWTH = 0.05
FORECAST_HORIZONS = {"nextMonth": 1, "nextQuarter": 3, "nextSixMonths": 6, "nextYear": 12}
GROWTH_FACTORS = 3

# category, share of the current amount that can be saved, advice
SAVINGS = [
    ("Utility costs", 0.15, ["Schedule energy audit", "Implement smart thermostats"]),
    ("Food waste", 0.12, ["Optimize inventory management", "Improve portion control"]),
    ("Staff overtime", 0.10, ["Review scheduling practices", "Adjust peak hour staffing"]),
]

PERFORMERS = 3
PRICE_HEADROOM_MARGIN = 80
THIN_MARGIN = 25

EXPENSE_RATIO = 0.7
TREND_MONTHS = 6
CRITICAL_STOCK_RATIO = 0.5


def analysis_envelope(analysis_type, now: datetime | None = None) -> dict:
    now = as_utc(now) or utcnow()
    known = analysis_type in ANALYSIS_TYPES
    return {
        "success": True,
        "analysisType": analysis_type,
        "timestamp": now.isoformat(),
        "message": f"{analysis_type} analysis completed successfully" if known else "Analysis type not recognized",
    }


# ── Revenue forecast ────────────────────────────────────────────────────────

def monthly_revenue(orders: Iterable[Order]) -> list[float]:
    """Revenue per calendar month, oldest first; months without orders are absent."""
    buckets: dict[tuple[int, int], float] = defaultdict(float)
    for o in orders:
        ts = as_utc(o.created_at)
        buckets[(ts.year, ts.month)] += float(o.total or 0)
    return [buckets[k] for k in sorted(buckets)]


def forecast(monthly: list[float], months: int) -> float:
    """Compound the mean month-over-month growth from the latest month."""
    if len(monthly) < 2:
        return 0.0
    rates = [(cur - prev) / prev for prev, cur in zip(monthly, monthly[1:]) if prev > 0]
    growth = sum(rates) / len(rates) if rates else DEFAULT_GROWTH
    return monthly[-1] * (1 + growth) ** months


def growth_factors(orders: Iterable[Order], limit: int = GROWTH_FACTORS) -> list[dict]:
    sales: dict[str, float] = defaultdict(float)
    for o in orders:
        for it in o.items:
            if it.menu_item is None or it.menu_item.category is None:
                continue
            sales[it.menu_item.category.name] += it.price * it.quantity
    factors = [{"factor": name, "impact": round_half_up(total / 1000)} for name, total in sales.items()]
    factors.sort(key=lambda f: f["impact"], reverse=True)
    return factors[:limit]


def revenue_prediction(db: Session, now: datetime) -> dict:
    orders = queries.settled_orders(db, trailing_months(12, now))
    monthly = monthly_revenue(orders)
    return {
        "predictions": {key: forecast(monthly, n) for key, n in FORECAST_HORIZONS.items()},
        "growthFactors": growth_factors(orders),
    }


# ── Expense savings ─────────────────────────────────────────────────────────

def potential_savings(rows: list[ExpenseRow]) -> list[dict]:
    amounts = {r.category: r.amount for r in rows}
    return [
        {
            "category": name,
            "currentAmount": amounts[name],
            "projectedSavings": round(amounts[name] * rate, 2),
            "recommendations": list(advice),
        }
        for name, rate, advice in SAVINGS
        if name in amounts
    ]


def expense_analysis(db: Session, now: datetime) -> dict:
    rows = reporting.compute_expenses(db, now)
    return {
        "potentialSavings": potential_savings(rows),
        "expenseDistribution": [{"category": r.category, "percentage": r.percentage} for r in rows],
    }


# ── Menu performers ─────────────────────────────────────────────────────────

def recommend(row: MenuAnalysisRow, top: bool) -> str:
    if top:
        if row.profit_margin > PRICE_HEADROOM_MARGIN:
            return "Consider 10% price increase"
        if row.category == "Drinks":
            return "Promote during weekends"
        return "Feature in combo deals"
    if row.profit_margin < THIN_MARGIN:
        return "Adjust portion size or increase price by 15%"
    if row.category == "Drinks":
        return "Replace with higher margin alternatives"
    return "Simplify preparation process"


def _performer(row: MenuAnalysisRow, top: bool) -> dict:
    return {
        "id": row.id,
        "name": row.name,
        "category": row.category,
        "profitMargin": row.profit_margin,
        "recommendation": recommend(row, top),
    }


def pricing_recommendation(top: list[MenuAnalysisRow]) -> str:
    names = [r.name for r in top if r.profit_margin > PRICE_HEADROOM_MARGIN]
    if not names:
        return "No menu item currently has the margin headroom for a price increase."
    joined = names[0] if len(names) == 1 else f"{', '.join(names[:-1])} and {names[-1]}"
    return f"Based on current margins, {joined} can sustain a 10% price increase."


def menu_analysis(db: Session, now: datetime) -> dict:
    # rows come back sorted by margin, highest first
    rows = analyze_menu(queries.menu_items_with_ingredients(db), queries.orders_with_items(db))
    top = rows[:PERFORMERS]
    under = sorted(rows, key=lambda r: r.profit_margin)[:PERFORMERS]
    return {
        "topPerformers": [_performer(r, True) for r in top],
        "underperformers": [_performer(r, False) for r in under],
        "pricingRecommendations": pricing_recommendation(top),
    }


# ── Anomaly scan ────────────────────────────────────────────────────────────

def cancellation_anomalies(orders: Iterable[Order]) -> list[dict]:
    """Flag users whose cancellations exceed twice the per-user average."""
    counts = Counter(o.user_id for o in orders if o.user_id)
    if not counts:
        return []
    avg = sum(counts.values()) / len(counts)
    return [
        {
            "priority": "high",
            "type": "cancellations",
            "details": f"Unusual number of cancellations ({n}) recorded by employee ID #{user_id[:3]}",
            "excess": f"{round_half_up((n / avg - 1) * 100)}%",
        }
        for user_id, n in counts.items()
        if n > avg * 2
    ]


def volume_anomalies(orders_now: int, orders_prev: int, sales_now: float, sales_prev: float) -> list[dict]:
    out = []
    drop = trend(orders_now, orders_prev)
    if drop < -reporting.ANOMALY_THRESHOLD:
        out.append({
            "priority": "medium",
            "type": "order_volume",
            "details": f"Order volume fell {abs(drop):.1f}% against last month ({orders_now} vs {orders_prev})",
            "limit": f"{reporting.ANOMALY_THRESHOLD:.0f}%",
        })
    spike = trend(sales_now, sales_prev)
    if spike > reporting.ANOMALY_THRESHOLD:
        out.append({
            "priority": "low",
            "type": "sales_spike",
            "details": f"Item sales rose {spike:.1f}% against last month",
            "limit": f"{reporting.ANOMALY_THRESHOLD:.0f}%",
        })
    return out


def anomaly_detection(db: Session, now: datetime) -> dict:
    cancelled = queries.orders_with_items(db, trailing_months(1, now), statuses=(OrderStatus.CANCELLED,))
    this_month, last_month = month_windows(now)
    anomalies = cancellation_anomalies(cancelled) + volume_anomalies(
        queries.order_count(db, this_month), queries.order_count(db, last_month),
        queries.order_item_price_sum(db, this_month), queries.order_item_price_sum(db, last_month),
    )
    return {
        "anomalies": anomalies,
        "recentActivity": [
            {"timestamp": now.isoformat(), "event": a["details"], "level": a["priority"]} for a in anomalies
        ],
    }


ANALYSES = {
    "revenuePrediction": revenue_prediction,
    "expenseAnalysis": expense_analysis,
    "menuAnalysis": menu_analysis,
    "anomalyDetection": anomaly_detection,
}


@guarded("analysis")
def compute_analysis(db: Session, analysis_type, now: datetime | None = None) -> dict:
    now = as_utc(now) or utcnow()
    out = analysis_envelope(analysis_type, now)
    if analysis_type in ANALYSES:
        out.update(ANALYSES[analysis_type](db, now))
    return out


# ── Owner dashboard ─────────────────────────────────────────────────────────

def percent_change(current: float, previous: float) -> float:
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def ratio(part: float, whole: float) -> float:
    return part / whole * 100 if whole > 0 else 0.0


def business_trends(orders: list[Order], now: datetime) -> list[BusinessTrend]:
    this_month = month_windows(now)[0].start
    out = []
    for back in range(TREND_MONTHS - 1, -1, -1):
        start = shift_months(this_month, -back)
        window = ReportPeriod(start, shift_months(start, 1))
        rev = revenue(o for o in orders if window.contains(o.created_at))
        out.append(BusinessTrend(month=MONTHS[start.month - 1], revenue=rev, profit=rev - rev * EXPENSE_RATIO))
    return out


def inventory_alerts(db: Session) -> list[InventoryAlert]:
    return [
        InventoryAlert(
            id=ing.id,
            name=ing.name,
            current_stock=ing.current_stock,
            min_level=ing.min_level,
            status="critical" if ing.current_stock < ing.min_level * CRITICAL_STOCK_RATIO else "warning",
        )
        for ing in queries.low_stock_ingredients(db)
    ]


@guarded("owner dashboard")
def compute_dashboard(db: Session, now: datetime | None = None) -> DashboardData:
    now = as_utc(now) or utcnow()
    windows = metric_windows(now)
    this_month, last_month = month_windows(now)
    # one load covering the year, last month and the trend months
    start = min(windows["yearToDate"].start, last_month.start,
                shift_months(this_month.start, -(TREND_MONTHS - 1)))
    orders = queries.settled_orders(db, ReportPeriod(start, now))

    def within(window: ReportPeriod) -> list[Order]:
        return [o for o in orders if window.contains(o.created_at)]

    revenues = {key: revenue(within(w)) for key, w in windows.items()}
    prev_orders = within(last_month)
    food, prev_food = ingredient_cost(within(this_month)), ingredient_cost(prev_orders)
    labor = labor_cost(queries.completed_shifts(db, this_month))
    prev_labor = labor_cost(queries.completed_shifts(db, last_month))

    rev, expenses, profit = metric_blocks(revenues, food, labor)
    prev_revenue = revenue(prev_orders)
    prev_profit = prev_revenue - (prev_food + prev_labor + OVERHEAD["monthly"])
    changes = MetricChanges(
        revenue=percent_change(rev.monthly, prev_revenue),
        profit_margin=percent_change(ratio(profit.monthly, rev.monthly), ratio(prev_profit, prev_revenue)),
        food_cost=percent_change(ratio(food, rev.monthly), ratio(prev_food, prev_revenue)),
        labor_cost=percent_change(ratio(labor, rev.monthly), ratio(prev_labor, prev_revenue)),
    )
    logger.debug("dashboard: %d orders since %s", len(orders), start.isoformat())
    return DashboardData(
        financial_metrics=DashboardMetrics(revenue=rev, expenses=expenses, profit=profit, changes=changes),
        top_selling_items=[
            DashboardItem(id=t.id, name=t.name, category=t.category, sales=t.quantity, revenue=t.revenue)
            for t in top_selling_items(within(windows["yearToDate"]))
        ],
        business_trends=business_trends(orders, now),
        inventory_alerts=inventory_alerts(db),
    )
