import json
import logging
from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from restodesk.db import get_db
from restodesk.deps import require_manager, require_owner
from restodesk.schemas.financial import ExpenseRow, MenuAnalysisRow, PeriodReport, FinancialMetrics
from restodesk.services import analysis, fallbacks, reporting
from restodesk.services.reporting import AggregationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/financial", tags=["financial"])

# Aggregation failures never surface as error statuses: log and serve the static payload.


def body_field(name: str):
    """Dependency reading one string field from a JSON body; anything unusable yields None."""
    async def read(request: Request) -> str | None:
        raw = await request.body()
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("%s %s: body is not JSON, ignoring", request.method, request.url.path)
            return None
        value = data.get(name) if isinstance(data, dict) else None
        return value if isinstance(value, str) else None
    return read


@router.get("/expenses", response_model=List[ExpenseRow])
def expenses(db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    try:
        return reporting.compute_expenses(db)
    except AggregationError:
        logger.exception("expense analysis failed, serving fallback")
        return fallbacks.expenses()


@router.get("/menu-analysis", response_model=List[MenuAnalysisRow])
def menu_analysis(db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    try:
        return reporting.compute_menu_analysis(db)
    except AggregationError:
        logger.exception("menu analysis failed, serving fallback")
        return fallbacks.menu_analysis()


@router.post("/generate-report", response_model=PeriodReport, response_model_exclude_none=True)
def generate_report(report_type: str | None = Depends(body_field("reportType")),
                    db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    try:
        return reporting.compute_period_report(db, report_type)
    except AggregationError:
        logger.exception("report generation failed for %r, serving fallback", report_type)
        return fallbacks.period_report()


@router.get("/metrics", response_model=FinancialMetrics)
def metrics(db: Session = Depends(get_db), sub: str = Depends(require_manager)):
    try:
        return reporting.compute_metrics(db)
    except AggregationError:
        logger.exception("metrics failed, serving fallback")
        return fallbacks.metrics()


@router.post("/analyze")
def analyze(analysis_type: str | None = Depends(body_field("analysisType")),
            db: Session = Depends(get_db), sub: str = Depends(require_owner)):
    try:
        return analysis.compute_analysis(db, analysis_type)
    except AggregationError:
        logger.exception("%r analysis failed, serving fallback", analysis_type)
        return fallbacks.analysis(analysis_type)
