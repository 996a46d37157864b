from pydantic import Field
from typing import List, Optional

from restodesk.schemas.common import CamelModel


class ExpenseRow(CamelModel):
    category: str
    amount: float
    percentage: int
    trend: float


class MenuAnalysisRow(CamelModel):
    id: str
    name: str
    category: str
    cost: float
    price: float
    sales: int
    revenue: float
    profit_margin: int


class ReportSummary(CamelModel):
    total_revenue: float
    total_expenses: float
    net_profit: float
    profit_margin: float


class ExpenseBreakdown(CamelModel):
    food_cost: float
    labor_cost: float
    overhead: float


class TopSellingItem(CamelModel):
    id: str
    name: str
    category: str
    quantity: int
    revenue: float


class PeriodOut(CamelModel):
    start: str
    end: str


class PeriodReport(CamelModel):
    success: bool = True
    report_type: str
    timestamp: str
    report_id: str
    summary: ReportSummary
    # absent on the fallback payload
    expense_breakdown: Optional[ExpenseBreakdown] = None
    top_selling_items: Optional[List[TopSellingItem]] = None
    period: Optional[PeriodOut] = None
    message: str


class TimeframeAmounts(CamelModel):
    daily: float
    weekly: float
    monthly: float
    year_to_date: float


class MetricsExpenses(CamelModel):
    food_cost: float
    labor_cost: float
    overhead: float
    total: float


class FinancialMetrics(CamelModel):
    revenue: TimeframeAmounts
    expenses: MetricsExpenses
    profit: TimeframeAmounts
    anomalies: int = Field(ge=0)


class MetricChanges(CamelModel):
    revenue: float
    profit_margin: float
    food_cost: float
    labor_cost: float


class DashboardMetrics(CamelModel):
    revenue: TimeframeAmounts
    expenses: MetricsExpenses
    profit: TimeframeAmounts
    changes: MetricChanges


class DashboardItem(CamelModel):
    id: str
    name: str
    category: str
    sales: int
    revenue: float


class BusinessTrend(CamelModel):
    month: str
    revenue: float
    profit: float


class InventoryAlert(CamelModel):
    id: str
    name: str
    current_stock: float
    min_level: float
    status: str  # critical / warning


class DashboardData(CamelModel):
    financial_metrics: DashboardMetrics
    top_selling_items: List[DashboardItem]
    business_trends: List[BusinessTrend]
    inventory_alerts: List[InventoryAlert]
