"""Financial aggregation over orders, shifts and menu items.

The pure helpers take already-loaded ORM objects; the ``compute_*`` entry
points pull what they need through :mod:`restodesk.services.queries` and
turn any failure along the way into :class:`AggregationError`.
"""
import functools
import logging
import math
import random
from collections import OrderedDict
from datetime import datetime
from typing import Iterable

from sqlalchemy.orm import Session

from restodesk.models.common import utcnow, as_utc
from restodesk.models.core import MenuItem, Order, Shift
from restodesk.schemas.financial import (
    ExpenseRow, MenuAnalysisRow, PeriodReport, ReportSummary, ExpenseBreakdown,
    TopSellingItem, PeriodOut, TimeframeAmounts, MetricsExpenses, FinancialMetrics,
)
from restodesk.services import queries
from restodesk.services.periods import (
    ReportPeriod, resolve_period, normalize_report_type, month_windows,
    trailing_months, metric_windows,
)

logger = logging.getLogger(__name__)

# ── Constants ───────────────────────────────────────────────────────────────
UTILITY_COST, UTILITY_TREND = 5680.45, 5.2
FOOD_WASTE_RATE, FOOD_WASTE_TREND = 0.12, 3.8
OVERTIME_RATE, OVERTIME_TREND = 0.15, 2.1
RENT_COST, RENT_TREND = 15000.00, 0.0

OVERHEAD = {
    "weekly": 4690.23,
    "monthly": 18760.90,
    "quarterly": 56282.70,
    "yearly": 225130.80,
}

# monthly expenses scaled to each metrics timeframe
PRORATE = {"daily": 1 / 30, "weekly": 1 / 4, "monthly": 1.0, "yearToDate": 12.0}

ANOMALY_THRESHOLD = 20.0
MENU_ANALYSIS_MONTHS = 3
TOP_ITEMS = 5


class AggregationError(Exception):
    """Raised when a report cannot be computed from the store."""


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


# ── Cost aggregator ─────────────────────────────────────────────────────────

def unit_cost(menu_item: MenuItem | None) -> float:
    """Per-unit cost: sum of linked ingredients' quantity."""
    if menu_item is None:
        return 0.0
    return float(sum(ing.quantity or 0 for ing in menu_item.ingredients))


def ingredient_cost(orders: Iterable[Order]) -> float:
    total = 0.0
    for o in orders:
        for it in o.items:
            # dangling menu item references contribute nothing
            if it.menu_item is None:
                continue
            total += unit_cost(it.menu_item) * it.quantity
    return total


def shift_hours(shift: Shift) -> float:
    if shift.start_time is None or shift.end_time is None:
        return 0.0
    return abs((as_utc(shift.end_time) - as_utc(shift.start_time)).total_seconds()) / 3600.0


def labor_cost(shifts: Iterable[Shift]) -> float:
    # shifts whose staff row is gone have no rate to charge
    return sum(shift_hours(s) * float(s.staff.hourly_rate or 0) for s in shifts if s.staff is not None)


def trend(current: float, previous: float) -> float:
    if previous > 0:
        return (current - previous) / previous * 100
    return 0.0


def revenue(orders: Iterable[Order]) -> float:
    """Σ stored order totals (not recomputed from lines)."""
    return float(sum(o.total or 0 for o in orders))


# ── Expense report ──────────────────────────────────────────────────────────

def build_expense_report(ingredients_now: float, ingredients_prev: float,
                         labor_now: float, labor_prev: float) -> list[ExpenseRow]:
    rows = [
        ("Ingredients", ingredients_now, trend(ingredients_now, ingredients_prev)),
        ("Staff labor", labor_now, trend(labor_now, labor_prev)),
        ("Utility costs", UTILITY_COST, UTILITY_TREND),
        ("Food waste", ingredients_now * FOOD_WASTE_RATE, FOOD_WASTE_TREND),
        ("Staff overtime", labor_now * OVERTIME_RATE, OVERTIME_TREND),
        ("Rent", RENT_COST, RENT_TREND),
    ]
    total = sum(amount for _, amount, _ in rows)
    out = [
        ExpenseRow(
            category=name,
            amount=amount,
            # rounded independently, so the column need not sum to 100
            percentage=round_half_up(amount / total * 100) if total else 0,
            trend=tr,
        )
        for name, amount, tr in rows
    ]
    # stable sort keeps declaration order for equal amounts
    out.sort(key=lambda r: r.amount, reverse=True)
    return out


# ── Menu profitability ──────────────────────────────────────────────────────

def _sales_by_item(orders: Iterable[Order]) -> "OrderedDict[str, dict]":
    sales: OrderedDict[str, dict] = OrderedDict()
    for o in orders:
        for it in o.items:
            if it.menu_item is None:
                continue
            agg = sales.setdefault(it.menu_item_id, {"item": it.menu_item, "quantity": 0, "revenue": 0.0})
            agg["quantity"] += it.quantity
            agg["revenue"] += it.price * it.quantity
    return sales


def analyze_menu(menu_items: Iterable[MenuItem], orders: Iterable[Order]) -> list[MenuAnalysisRow]:
    sales = _sales_by_item(orders)
    rows = []
    for m in menu_items:
        agg = sales.get(m.id, {"quantity": 0, "revenue": 0.0})
        cost = unit_cost(m)
        total_cost = cost * agg["quantity"]
        rev = agg["revenue"]
        margin = round_half_up((rev - total_cost) / rev * 100) if rev > 0 else 0
        rows.append(MenuAnalysisRow(
            id=m.id,
            name=m.name,
            category=m.category.name if m.category else "",
            cost=cost,
            price=m.price,
            sales=agg["quantity"],
            revenue=rev,
            profit_margin=margin,
        ))
    rows.sort(key=lambda r: r.profit_margin, reverse=True)
    return rows


def top_selling_items(orders: Iterable[Order], limit: int = TOP_ITEMS) -> list[TopSellingItem]:
    items = [
        TopSellingItem(
            id=item_id,
            name=agg["item"].name,
            category=agg["item"].category.name if agg["item"].category else "",
            quantity=agg["quantity"],
            revenue=agg["revenue"],
        )
        for item_id, agg in _sales_by_item(orders).items()
    ]
    items.sort(key=lambda r: r.revenue, reverse=True)
    return items[:limit]


# ── Period report ───────────────────────────────────────────────────────────

def profit_margin(net_profit: float, total_revenue: float) -> float:
    # no revenue means no meaningful margin
    if total_revenue == 0:
        return 0.0
    return net_profit / total_revenue * 100


def build_period_report(report_type: str, period: ReportPeriod, orders: list[Order],
                        shifts: list[Shift], now: datetime | None = None) -> PeriodReport:
    kind = normalize_report_type(report_type)
    total_revenue = revenue(orders)
    food = ingredient_cost(orders)
    labor = labor_cost(shifts)
    overhead = OVERHEAD[kind]
    total_expenses = food + labor + overhead
    net = total_revenue - total_expenses
    label = report_type or kind
    return PeriodReport(
        report_type=label,
        timestamp=(now or utcnow()).isoformat(),
        report_id=f"report-{random.randint(0, 999999)}",
        summary=ReportSummary(
            total_revenue=total_revenue,
            total_expenses=total_expenses,
            net_profit=net,
            profit_margin=profit_margin(net, total_revenue),
        ),
        expense_breakdown=ExpenseBreakdown(food_cost=food, labor_cost=labor, overhead=overhead),
        top_selling_items=top_selling_items(orders),
        period=PeriodOut(start=period.start.isoformat(), end=period.end.isoformat()),
        message=f"{label[:1].upper()}{label[1:]} report generated successfully",
    )


# ── Metrics ─────────────────────────────────────────────────────────────────

def count_anomalies(orders_now: int, orders_prev: int, sales_now: float, sales_prev: float) -> int:
    n = 0
    if trend(orders_now, orders_prev) < -ANOMALY_THRESHOLD:
        n += 1
    if trend(sales_now, sales_prev) > ANOMALY_THRESHOLD:
        n += 1
    return n


def _timeframes(values: dict[str, float]) -> TimeframeAmounts:
    return TimeframeAmounts(
        daily=values["daily"], weekly=values["weekly"],
        monthly=values["monthly"], year_to_date=values["yearToDate"],
    )


def metric_blocks(revenues: dict[str, float], food: float,
                  labor: float) -> tuple[TimeframeAmounts, MetricsExpenses, TimeframeAmounts]:
    """(revenue, expenses, profit) with month-to-date expenses pro-rated per timeframe."""
    overhead = OVERHEAD["monthly"]
    total = food + labor + overhead
    profit = {k: revenues[k] - total * PRORATE[k] for k in PRORATE}
    return (
        _timeframes(revenues),
        MetricsExpenses(food_cost=food, labor_cost=labor, overhead=overhead, total=total),
        _timeframes(profit),
    )


def build_metrics(revenues: dict[str, float], food: float, labor: float, anomalies: int) -> FinancialMetrics:
    rev, expenses, profit = metric_blocks(revenues, food, labor)
    return FinancialMetrics(revenue=rev, expenses=expenses, profit=profit, anomalies=anomalies)


# ── Entry points ────────────────────────────────────────────────────────────

def guarded(what: str):
    """Decorator: any failure while aggregating surfaces as AggregationError."""
    def wrap(fn):
        @functools.wraps(fn)
        def inner(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except AggregationError:
                raise
            except Exception as e:
                raise AggregationError(f"{what} failed: {e}") from e
        return inner
    return wrap


@guarded("expense report")
def compute_expenses(db: Session, now: datetime | None = None) -> list[ExpenseRow]:
    this_month, last_month = month_windows(now)
    cur_orders = queries.settled_orders(db, this_month)
    prev_orders = queries.settled_orders(db, last_month)
    cur_shifts = queries.completed_shifts(db, this_month)
    prev_shifts = queries.completed_shifts(db, last_month)
    return build_expense_report(
        ingredient_cost(cur_orders), ingredient_cost(prev_orders),
        labor_cost(cur_shifts), labor_cost(prev_shifts),
    )


@guarded("menu analysis")
def compute_menu_analysis(db: Session, now: datetime | None = None) -> list[MenuAnalysisRow]:
    window = trailing_months(MENU_ANALYSIS_MONTHS, now)
    return analyze_menu(queries.menu_items_with_ingredients(db), queries.settled_orders(db, window))


@guarded("period report")
def compute_period_report(db: Session, report_type: str | None, now: datetime | None = None) -> PeriodReport:
    now = as_utc(now) or utcnow()
    period = resolve_period(report_type, now)
    orders = queries.settled_orders(db, period)
    shifts = queries.completed_shifts(db, period)
    logger.debug("report %s: %d orders, %d shifts", report_type, len(orders), len(shifts))
    return build_period_report(report_type or "", period, orders, shifts, now)


@guarded("financial metrics")
def compute_metrics(db: Session, now: datetime | None = None) -> FinancialMetrics:
    now = as_utc(now) or utcnow()
    windows = metric_windows(now)
    # one query for the year, bucketed in memory
    year_orders = queries.settled_orders(db, windows["yearToDate"])
    revenues = {
        key: revenue(o for o in year_orders if w.contains(o.created_at))
        for key, w in windows.items()
    }
    month_orders = [o for o in year_orders if windows["monthly"].contains(o.created_at)]
    food = ingredient_cost(month_orders)
    labor = labor_cost(queries.completed_shifts(db, windows["monthly"]))

    this_month, last_month = month_windows(now)
    anomalies = count_anomalies(
        queries.order_count(db, this_month), queries.order_count(db, last_month),
        queries.order_item_price_sum(db, this_month), queries.order_item_price_sum(db, last_month),
    )
    return build_metrics(revenues, food, labor, anomalies)
