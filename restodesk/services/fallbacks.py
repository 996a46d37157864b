"""Static payloads served when a financial aggregation cannot be computed."""
import copy
import random

from restodesk.models.common import utcnow
from restodesk.schemas.financial import (
    ExpenseRow, MenuAnalysisRow, PeriodReport, ReportSummary,
    FinancialMetrics, TimeframeAmounts, MetricsExpenses,
    DashboardData, DashboardMetrics, MetricChanges, DashboardItem, BusinessTrend, InventoryAlert,
)
from restodesk.services.analysis import analysis_envelope

EXPENSES = [
    ("Ingredients", 42350.80, 45, -1.3),
    ("Rent", 15000.00, 18, 0),
    ("Utility costs", 5680.45, 15, 5.2),
    ("Food waste", 4230.20, 12, 3.8),
    ("Staff overtime", 3560.75, 10, 2.1),
]

MENU_ANALYSIS = [
    # id, name, category, cost, price, sales, revenue, profitMargin
    ("1", "Premium Shisha Mix", "Shisha", 5.20, 39.99, 342, 13676.58, 87),
    ("2", "Specialty Cocktails", "Drinks", 3.50, 15.99, 520, 8314.80, 78),
    ("3", "Mezze Platter", "Appetizer", 8.40, 29.99, 275, 8247.25, 72),
    ("4", "Seafood Platter", "Main Course", 28.50, 36.99, 120, 4438.80, 23),
    ("5", "Imported Beer Selection", "Drinks", 4.80, 6.99, 380, 2656.20, 31),
    ("6", "Specialty Desserts", "Desserts", 8.90, 13.99, 175, 2448.25, 35),
    ("7", "Signature Burger", "Main Course", 6.75, 18.99, 310, 5886.90, 65),
    ("8", "House Wine", "Drinks", 9.50, 29.99, 245, 7347.55, 68),
]


def expenses() -> list[ExpenseRow]:
    return [ExpenseRow(category=c, amount=a, percentage=p, trend=t) for c, a, p, t in EXPENSES]


def menu_analysis() -> list[MenuAnalysisRow]:
    return [
        MenuAnalysisRow(id=i, name=n, category=c, cost=co, price=pr, sales=s, revenue=r, profit_margin=m)
        for i, n, c, co, pr, s, r, m in MENU_ANALYSIS
    ]


def period_report() -> PeriodReport:
    return PeriodReport(
        report_type="monthly",
        timestamp=utcnow().isoformat(),
        report_id=f"report-{random.randint(0, 999999)}",
        summary=ReportSummary(
            total_revenue=94250.34,
            total_expenses=92691.67,
            net_profit=29560.45,
            profit_margin=31.36,
        ),
        message="Report generated successfully",
    )


def metrics() -> FinancialMetrics:
    return FinancialMetrics(
        revenue=TimeframeAmounts(daily=3245.89, weekly=22460.75, monthly=94250.34, year_to_date=845678.90),
        expenses=MetricsExpenses(food_cost=31250.45, labor_cost=42680.32, overhead=18760.90, total=92691.67),
        profit=TimeframeAmounts(daily=988.76, weekly=6890.21, monthly=29560.45, year_to_date=256978.12),
        anomalies=3,
    )


GROWTH_FACTORS = [
    {"factor": "Weekend dinner service", "impact": 18},
    {"factor": "Specialty cocktails", "impact": 15},
    {"factor": "Premium shisha offerings", "impact": 12},
]

SEASONAL_TRENDS = [
    {"factor": "Summer terrace season", "impact": 25},
    {"factor": "Winter holiday events", "impact": 20},
    {"factor": "Mid-week slump", "impact": -8},
]

PRICING_NOTE = (
    "Based on price elasticity analysis, Premium Shisha Mix and Specialty Cocktails "
    "can sustain a 10% price increase without significant impact on demand."
)

ANALYSIS_BLOCKS = {
    "revenuePrediction": {
        "predictions": {
            "nextMonth": 98650.45,
            "nextQuarter": 310570.80,
            "nextSixMonths": 624980.35,
            "nextYear": 1245680.75,
        },
        "growthFactors": GROWTH_FACTORS,
        "seasonalTrends": SEASONAL_TRENDS,
    },
    "expenseAnalysis": {
        "potentialSavings": [
            {"category": "Utility costs", "currentAmount": 5680.45, "projectedSavings": 852.07,
             "recommendations": ["Schedule energy audit", "Implement smart thermostats"]},
            {"category": "Food waste", "currentAmount": 4230.20, "projectedSavings": 507.62,
             "recommendations": ["Optimize inventory management", "Improve portion control"]},
            {"category": "Staff overtime", "currentAmount": 3560.75, "projectedSavings": 356.08,
             "recommendations": ["Review scheduling practices", "Adjust peak hour staffing"]},
        ],
        "expenseDistribution": [
            {"category": "Ingredients", "percentage": 45},
            {"category": "Rent", "percentage": 18},
            {"category": "Utilities", "percentage": 15},
            {"category": "Waste", "percentage": 12},
            {"category": "Labor", "percentage": 10},
        ],
        "anomalies": [
            {"supplier": "Supplier A", "issue": "Price increase of 18% (market average: 3.5%)",
             "recommendation": "Renegotiate terms or explore alternatives"},
        ],
    },
    "menuAnalysis": {
        "topPerformers": [
            {"id": "1", "name": "Premium Shisha Mix", "category": "Shisha", "profitMargin": 87,
             "recommendation": "Consider 10% price increase"},
            {"id": "2", "name": "Specialty Cocktails", "category": "Drinks", "profitMargin": 78,
             "recommendation": "Promote during weekends"},
            {"id": "3", "name": "Mezze Platter", "category": "Appetizer", "profitMargin": 72,
             "recommendation": "Feature in combo deals"},
        ],
        "underperformers": [
            {"id": "4", "name": "Seafood Platter", "category": "Main Course", "profitMargin": 23,
             "recommendation": "Adjust portion size or increase price by 15%"},
            {"id": "5", "name": "Imported Beer Selection", "category": "Drinks", "profitMargin": 31,
             "recommendation": "Replace with higher margin alternatives"},
            {"id": "6", "name": "Specialty Desserts", "category": "Desserts", "profitMargin": 35,
             "recommendation": "Simplify preparation process"},
        ],
        "pricingRecommendations": PRICING_NOTE,
    },
    "anomalyDetection": {
        "anomalies": [
            {"priority": "high", "type": "refunds",
             "details": "Unusual number of refunds (12) processed by employee ID #103 on March 2, 2024",
             "excess": "400%"},
            {"priority": "medium", "type": "discounts",
             "details": "Discount rate of 35% applied to 8 transactions on February 28, 2024", "limit": "25%"},
            {"priority": "low", "type": "payment_methods",
             "details": "Unusual spike in cash payments (62% of daily transactions) on March 5, 2024",
             "average": "34%"},
        ],
        "recentActivity": [
            {"timestamp": "2024-03-02T21:45:00Z", "event": "Unusual refund pattern detected", "level": "high"},
            {"timestamp": "2024-02-28T20:30:00Z", "event": "Unauthorized discount rates applied", "level": "medium"},
            {"timestamp": "2024-03-05T22:15:00Z", "event": "Unusual payment method distribution", "level": "low"},
        ],
    },
}

DASHBOARD_ITEMS = [
    ("1", "Grilled Salmon", "Main Course", 342, 8892.00),
    ("2", "Filet Mignon", "Main Course", 287, 11480.00),
    ("3", "Caesar Salad", "Appetizer", 412, 4944.00),
    ("4", "Chocolate Lava Cake", "Dessert", 298, 2384.00),
    ("5", "House Wine", "Beverage", 526, 7890.00),
]

BUSINESS_TRENDS = [
    ("Jan", 75340.45, 22602.14),
    ("Feb", 68790.32, 20637.10),
    ("Mar", 82450.90, 24735.27),
    ("Apr", 79340.23, 23802.07),
    ("May", 85670.76, 25701.23),
    ("Jun", 90450.89, 27135.27),
]

INVENTORY_ALERTS = [
    ("1", "Premium Vodka", 3, 10, "critical"),
    ("2", "Lemon", 15, 20, "warning"),
    ("3", "Mint Leaves", 8, 15, "warning"),
]


def analysis(analysis_type) -> dict:
    out = analysis_envelope(analysis_type)
    out.update(copy.deepcopy(ANALYSIS_BLOCKS.get(analysis_type, {})))
    return out


def dashboard() -> DashboardData:
    m = metrics()
    return DashboardData(
        financial_metrics=DashboardMetrics(
            revenue=m.revenue,
            expenses=m.expenses,
            profit=m.profit,
            changes=MetricChanges(revenue=5.2, profit_margin=1.8, food_cost=-0.5, labor_cost=0.3),
        ),
        top_selling_items=[
            DashboardItem(id=i, name=n, category=c, sales=s, revenue=r) for i, n, c, s, r in DASHBOARD_ITEMS
        ],
        business_trends=[BusinessTrend(month=mo, revenue=r, profit=p) for mo, r, p in BUSINESS_TRENDS],
        inventory_alerts=[
            InventoryAlert(id=i, name=n, current_stock=cs, min_level=ml, status=st)
            for i, n, cs, ml, st in INVENTORY_ALERTS
        ],
    )
