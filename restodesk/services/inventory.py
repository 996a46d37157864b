"""Usage statistics for the inventory screens.

All figures derive from ``IngredientUsage`` rows. Ingredients without enough
history report a ``stable`` trend and zero usage rather than invented numbers.
"""
from datetime import datetime, timedelta
from typing import Iterable

from restodesk.models.common import utcnow, as_utc
from restodesk.models.core import Ingredient, IngredientUsage

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
WEEKS = ("Week 1", "Week 2", "Week 3", "Week 4")
MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
TREND_BAND = 10.0  # percent change either way that still counts as stable
MIN_TREND_RECORDS = 4


def recent_usage(usage: Iterable[IngredientUsage], days: int, now: datetime | None = None) -> float:
    now = as_utc(now) or utcnow()
    cutoff = now - timedelta(days=days)
    return float(sum(u.amount for u in usage if cutoff <= as_utc(u.date) <= now))


def _halves_trend(values: list[float]) -> str:
    if len(values) < 2:
        return "stable"
    half = len(values) // 2
    first, second = values[:half], values[half:]
    first_avg = sum(first) / len(first)
    second_avg = sum(second) / len(second)
    if first_avg <= 0:
        return "stable"
    change = (second_avg - first_avg) / first_avg * 100
    if change > TREND_BAND:
        return "increasing"
    if change < -TREND_BAND:
        return "decreasing"
    return "stable"


def usage_trend(usage: Iterable[IngredientUsage]) -> str:
    """Compare average usage of the older and newer half of the history."""
    rows = sorted(usage, key=lambda u: as_utc(u.date))
    if len(rows) < MIN_TREND_RECORDS:
        return "stable"
    return _halves_trend([u.amount for u in rows])


def item_summary(ing: Ingredient, now: datetime | None = None) -> dict:
    return {
        "id": ing.id,
        "name": ing.name,
        "category": ing.category,
        "currentStock": ing.current_stock,
        "unit": ing.unit,
        "minLevel": ing.min_level,
        "pricePerUnit": ing.price_per_unit,
        "value": ing.current_stock * ing.price_per_unit,
        "usage": {
            "last7Days": recent_usage(ing.usage, 7, now),
            "last30Days": recent_usage(ing.usage, 30, now),
        },
        "trend": usage_trend(ing.usage),
    }


def distinct_categories(ingredients: Iterable[Ingredient]) -> list[str]:
    seen: list[str] = []
    for ing in ingredients:
        if ing.category and ing.category not in seen:
            seen.append(ing.category)
    return seen


def monthly_usage(ingredients: list[Ingredient], now: datetime | None = None) -> dict:
    """Usage per category for the six most recent calendar months (top three categories)."""
    now = as_utc(now) or utcnow()
    keys = []
    y, m = now.year, now.month
    for _ in range(6):
        keys.insert(0, (y, m))
        y, m = (y, m - 1) if m > 1 else (y - 1, 12)
    datasets = []
    for cat in distinct_categories(ingredients)[:3]:
        totals = dict.fromkeys(keys, 0.0)
        for ing in ingredients:
            if ing.category != cat:
                continue
            for u in ing.usage:
                d = as_utc(u.date)
                if (d.year, d.month) in totals:
                    totals[(d.year, d.month)] += u.amount
        datasets.append({"label": cat, "data": [totals[k] for k in keys]})
    return {"labels": [MONTHS[m - 1] for _, m in keys], "datasets": datasets}


def analyze(items: list[dict], ingredients: list[Ingredient], now: datetime | None = None) -> dict:
    total_usage = sum(i["usage"]["last30Days"] for i in items) or 1
    top = sorted(items, key=lambda i: i["usage"]["last30Days"], reverse=True)[:5]
    top_used = [
        {"name": i["name"], "usagePercent": round(i["usage"]["last30Days"] / total_usage * 100, 1)}
        for i in top
    ]
    increasing = [i["name"] for i in items if i["trend"] == "increasing"]
    decreasing = [i["name"] for i in items if i["trend"] == "decreasing"]

    recommendations = []
    for i in top[:2]:
        if i["name"] in increasing:
            recommendations.append(f"Increase {i['name']} stock level by 15% to meet rising demand")
    near_min = [i for i in items if i["currentStock"] < i["minLevel"] * 1.2 and i["usage"]["last7Days"] > 0]
    for i in near_min[:2]:
        recommendations.append(f"Restock {i['name']} soon - current level is near minimum with active usage")
    for i in items:
        # slow movers sitting on more than twice their minimum
        if i["trend"] == "decreasing" and i["currentStock"] > i["minLevel"] * 2:
            recommendations.append(f"Reduce order quantity for {i['name']} to minimize wastage")

    counts: dict[str, int] = {}
    for i in items:
        counts[i["category"]] = counts.get(i["category"], 0) + 1

    return {
        "topUsedItems": top_used,
        "usageTrends": {"increasing": increasing, "decreasing": decreasing},
        "recommendations": recommendations,
        "monthlyUsageData": monthly_usage(ingredients, now),
        "categoryDistribution": {"labels": list(counts), "data": list(counts.values())},
    }


def item_usage(ing: Ingredient, now: datetime | None = None) -> dict:
    """Weekly (by weekday, last 7 days) and monthly (four 7-day buckets) usage with costs."""
    now = as_utc(now) or utcnow()
    by_day = dict.fromkeys(WEEKDAYS, 0.0)
    by_week = dict.fromkeys(WEEKS, 0.0)
    for u in ing.usage:
        d = as_utc(u.date)
        if d > now:
            continue
        age = now - d
        if age <= timedelta(days=7):
            by_day[WEEKDAYS[d.weekday()]] += u.amount
        # newest week is "Week 4"
        bucket = int(age / timedelta(days=7))
        if bucket < 4:
            by_week[WEEKS[3 - bucket]] += u.amount

    def block(labels, totals):
        values = [totals[k] for k in labels]
        return {
            "labels": list(labels),
            "values": values,
            "costs": [v * ing.price_per_unit for v in values],
            "trend": _halves_trend(values),
        }

    return {"weekly": block(WEEKDAYS, by_day), "monthly": block(WEEKS, by_week)}
